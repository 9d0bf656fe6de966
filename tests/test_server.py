# tests/test_server.py
import pytest
from unittest.mock import patch, AsyncMock

from media_explainer import server
from media_explainer.errors import ModelUnavailableError
from media_explainer.models import ExtractionResponse
from media_explainer.server import ask_about_content, extract_content, extraction_health


@pytest.mark.asyncio
async def test_extract_content_empty_source():
    """Test that a blank source returns an error without running the pipeline."""
    with patch.object(server.pipeline, "run", new=AsyncMock()) as run:
        result = await extract_content(source="   ")
    assert result["success"] is False
    assert result["errorKind"] == "invalid_request"
    run.assert_not_called()


@pytest.mark.asyncio
async def test_extract_content_returns_payload():
    response = ExtractionResponse(
        success=True,
        extracted_text="hello",
        ai_explanation="A greeting.",
        summary="Hi.",
        key_points=["greeting"],
        metadata={"fileType": "text"},
    )
    with patch.object(server.pipeline, "run", new=AsyncMock(return_value=response)) as run:
        result = await extract_content(source=" notes.txt ")

    run.assert_awaited_once_with("notes.txt")
    assert result["extractedText"] == "hello"
    assert result["keyPoints"] == ["greeting"]
    assert "error" not in result


@pytest.mark.asyncio
async def test_extraction_health_lists_formats():
    result = await extraction_health()
    assert result["status"] == "ok"
    assert result["supportedFormats"]["pdf"] == ["pdf"]
    assert result["services"]["ocr"] == "tesseract"
    assert "legacy .doc" in result["services"]["doc"]
    assert "Speech-to-text" in result["note"]


@pytest.mark.asyncio
async def test_ask_about_content_empty_message():
    result = await ask_about_content(message="")
    assert result["success"] is False


@pytest.mark.asyncio
async def test_ask_about_content_answers():
    with patch.object(server.pipeline.synthesizer, "chat_with_context", return_value="It is a memo.") as chat:
        result = await ask_about_content(message="What is this?", context="memo text")
    chat.assert_called_once_with("What is this?", "memo text")
    assert result == {"success": True, "response": "It is a memo."}


@pytest.mark.asyncio
async def test_ask_about_content_model_unavailable():
    error = ModelUnavailableError("OpenAI API key not configured")
    with patch.object(server.pipeline.synthesizer, "chat_with_context", side_effect=error):
        result = await ask_about_content(message="What is this?")
    assert result["success"] is False
    assert result["errorKind"] == "model_unavailable"
