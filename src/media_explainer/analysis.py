# src/media_explainer/analysis.py
"""AI analysis of extracted text: prompt building, model call and reply parsing."""

import logging
import re
from typing import Any, Iterator

from openai import OpenAI, OpenAIError

from media_explainer.errors import ModelCallError, ModelUnavailableError, PipelineError
from media_explainer.models import AnalysisResult

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 15000
MAX_CHAT_CONTEXT_CHARS = 10000
TRUNCATION_MARKER = "...(truncated)"
TEMPERATURE = 0.7
MAX_TOKENS = 2000
CHAT_MAX_TOKENS = 1000

UNAVAILABLE_SUMMARY = "Unable to generate AI summary"
EMPTY_REPLY_EXPLANATION = "The model returned an empty reply."

SYSTEM_PROMPT = (
    "You are an expert content analyzer. Your job is to read extracted text from various "
    "sources (images, videos, PDFs, documents, etc.) and provide comprehensive, intelligent "
    "explanations. Focus on clarity, key insights, and actionable information."
)

STREAM_SYSTEM_PROMPT = (
    "You are an expert content analyzer. Provide comprehensive, intelligent explanations "
    "of extracted text content."
)

EXPLANATION_MARKER = "**EXPLANATION:**"
SUMMARY_MARKER = "**SUMMARY:**"
KEY_POINTS_MARKER = "**KEY POINTS:**"

_EXPLANATION_RE = re.compile(r"\*\*EXPLANATION:\*\*(.*?)(?=\*\*SUMMARY:|\Z)", re.IGNORECASE | re.DOTALL)
_SUMMARY_RE = re.compile(r"\*\*SUMMARY:\*\*(.*?)(?=\*\*KEY POINTS:|\Z)", re.IGNORECASE | re.DOTALL)
_KEY_POINTS_RE = re.compile(r"\*\*KEY POINTS:\*\*(.*)\Z", re.IGNORECASE | re.DOTALL)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def unavailable_explanation(error: str) -> str:
    return f"AI explanation unavailable (Error: {error})"


def build_prompt(text: str, file_type: str, metadata: dict[str, Any] | None = None) -> str:
    """Instruction template, metadata hints and the (truncated) extracted text."""
    metadata = metadata or {}

    hints = []
    if metadata.get("original_name"):
        hints.append(f"Original File: {metadata['original_name']}")
    if metadata.get("frame_count"):
        hints.append(f"Note: This video contained {metadata['frame_count']} analyzed frames")
    if metadata.get("page_count"):
        hints.append(f"Note: This document has {metadata['page_count']} pages")

    content = text[:MAX_PROMPT_CHARS]
    if len(text) > MAX_PROMPT_CHARS:
        content = f"{content} {TRUNCATION_MARKER}"

    parts = [
        f"I've extracted text from a {file_type} file. Please analyze this content and provide:",
        "",
        "1. **Comprehensive Explanation**: A detailed explanation of what this content is about",
        "2. **Key Summary**: A concise summary (2-3 sentences)",
        "3. **Key Points**: Main takeaways or important information (bullet points)",
        "",
    ]
    if hints:
        parts.extend(hints)
        parts.append("")
    parts.extend([
        "Extracted Content:",
        "---",
        content,
        "---",
        "",
        "Please provide your analysis in this format:",
        "",
        EXPLANATION_MARKER,
        "[Your detailed explanation here]",
        "",
        SUMMARY_MARKER,
        "[Your concise summary here]",
        "",
        KEY_POINTS_MARKER,
        "- [Point 1]",
        "- [Point 2]",
        "- [Point 3]",
        "...",
    ])
    return "\n".join(parts)


def parse_key_points(section: str) -> list[str]:
    points = []
    for line in section.splitlines():
        if not _BULLET_RE.match(line):
            continue
        point = _BULLET_RE.sub("", line, count=1).strip()
        if point:
            points.append(point)
    return points


def parse_response(response: str) -> dict[str, Any]:
    """
    Split a reply into explanation, summary and key points.

    Sections that are missing stay empty, except explanation which falls back
    to the whole reply so it is never empty.
    """
    result = {"explanation": "", "summary": "", "key_points": []}

    match = _EXPLANATION_RE.search(response)
    if match:
        result["explanation"] = match.group(1).strip()

    match = _SUMMARY_RE.search(response)
    if match:
        result["summary"] = match.group(1).strip()

    match = _KEY_POINTS_RE.search(response)
    if match:
        result["key_points"] = parse_key_points(match.group(1))

    if not result["explanation"]:
        result["explanation"] = response.strip()
    return result


class AnalysisSynthesizer:
    """Turns extracted text into an AnalysisResult using an OpenAI chat model."""

    def __init__(self, api_key: str | None = None, model: str = "gpt-4o-mini", client: Any = None):
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        """Lazily create the client so a missing key only matters when a call is made."""
        if self._client is None:
            if not self.api_key:
                raise ModelUnavailableError("OpenAI API key not configured")
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int):
        client = self._get_client()
        try:
            return client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=TEMPERATURE,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            status = getattr(e, "status_code", None)
            raise ModelCallError(str(e), status=status, error_type=type(e).__name__) from e

    def synthesize(self, text: str, file_type: str, metadata: dict[str, Any] | None = None) -> AnalysisResult:
        """Never raises: model failures produce a fallback result with error set."""
        logger.info("Generating AI explanation for extracted content...")
        try:
            completion = self._complete(SYSTEM_PROMPT, build_prompt(text, file_type, metadata), MAX_TOKENS)
            reply = completion.choices[0].message.content or ""
        except PipelineError as e:
            logger.error(f"Error generating AI explanation ({e.kind.value}): {e}")
            return self.fallback(str(e), e.kind.value)
        except Exception as e:
            logger.exception(f"Unexpected error generating AI explanation: {e}")
            return self.fallback(str(e), ModelCallError.kind.value)

        parsed = parse_response(reply)
        usage = getattr(completion, "usage", None)
        logger.info("AI explanation generated successfully")
        return AnalysisResult(
            explanation=parsed["explanation"] or EMPTY_REPLY_EXPLANATION,
            summary=parsed["summary"],
            key_points=parsed["key_points"],
            model=getattr(completion, "model", None) or self.model,
            tokens_used=getattr(usage, "total_tokens", None),
        )

    def fallback(self, error: str, error_kind: str) -> AnalysisResult:
        return AnalysisResult(
            explanation=unavailable_explanation(error),
            summary=UNAVAILABLE_SUMMARY,
            key_points=[],
            error=error,
            error_kind=error_kind,
        )

    def stream_explanation(self, text: str, file_type: str, metadata: dict[str, Any] | None = None) -> Iterator[str]:
        """
        Yield reply chunks as they arrive; a failure yields one 'Error: ...' chunk.

        Library entry point for callers that render output incrementally. The
        MCP tools return whole responses, so none of them streams.
        """
        try:
            client = self._get_client()
            stream = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": STREAM_SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(text, file_type, metadata)},
                ],
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
                stream=True,
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except (PipelineError, OpenAIError) as e:
            logger.error(f"Error streaming AI explanation: {e}")
            yield f"Error: {e}"

    def chat_with_context(self, message: str, context: str = "") -> str:
        """Answer a question, optionally grounded in previously extracted content."""
        if context:
            system_prompt = (
                "You are a helpful AI assistant. You have access to previously analyzed content. "
                "Use this context to answer the user's questions accurately and comprehensively."
                f"\n\nContext:\n{context[:MAX_CHAT_CONTEXT_CHARS]}"
            )
        else:
            system_prompt = "You are a helpful AI assistant. Answer questions clearly and accurately."

        logger.info("Processing chat message with context...")
        completion = self._complete(system_prompt, message, CHAT_MAX_TOKENS)
        return completion.choices[0].message.content or ""
