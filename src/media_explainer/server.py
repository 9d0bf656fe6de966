# src/media_explainer/server.py
"""MCP server for media text extraction and AI explanation."""

import asyncio
import logging

from mcp.server.fastmcp import FastMCP

from media_explainer.classifier import supported_formats
from media_explainer.config import load_settings
from media_explainer.errors import PipelineError
from media_explainer.models import ExtractionResponse
from media_explainer.pipeline import ExtractionPipeline

settings = load_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = FastMCP("media-explainer")

# Initialize components
pipeline = ExtractionPipeline.from_settings(settings)


@mcp.tool()
async def extract_content(source: str) -> dict:
    """
    Extract text from an image, video, audio, PDF, Word or text file and
    explain it with AI.

    Args:
        source: File name inside the uploads directory,
                or an http(s) URL pointing to the file

    Returns:
        Dictionary with success, extractedText, aiExplanation, summary,
        keyPoints and metadata; or success=false with an error message
    """
    if not source or not source.strip():
        return ExtractionResponse(
            success=False,
            error="No file or URL provided. Pass an uploaded file name or an http(s) URL.",
            error_kind="invalid_request",
        ).to_payload()

    response = await pipeline.run(source.strip())
    if response.success:
        logger.info(f"Successfully processed {source}")
    return response.to_payload()


@mcp.tool()
async def extraction_health() -> dict:
    """Report the services backing each extraction step and the supported formats."""
    return {
        "status": "ok",
        "services": {
            "ocr": "tesseract",
            "video": "ffmpeg",
            "audio": "ffmpeg",
            "pdf": "pypdf",
            "doc": "python-docx (.docx only; legacy .doc is rejected)",
            "storage": "supabase" if settings.storage_configured else "not configured",
            "ai": settings.openai_model if settings.model_configured else "not configured",
        },
        "supportedFormats": supported_formats(),
        "note": "Speech-to-text requires external API integration",
    }


@mcp.tool()
async def ask_about_content(message: str, context: str = "") -> dict:
    """
    Ask a question about previously extracted content.

    Args:
        message: The question
        context: Extracted text or explanation to ground the answer in

    Returns:
        Dictionary with success and the answer, or an error message
    """
    if not message or not message.strip():
        return {"success": False, "error": "Message must not be empty"}

    try:
        answer = await asyncio.to_thread(pipeline.synthesizer.chat_with_context, message, context)
    except PipelineError as e:
        logger.error(f"Chat error: {e}")
        return {"success": False, "error": e.message, "errorKind": e.kind.value}

    return {"success": True, "response": answer}


def main():
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
