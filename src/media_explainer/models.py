"""Pydantic models for extraction results and tool responses."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FileType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    PDF = "pdf"
    DOC = "doc"
    TEXT = "text"
    UNKNOWN = "unknown"


class SourceKind(str, Enum):
    UPLOAD = "upload"
    URL = "url"


class FrameDescriptor(BaseModel):
    """A sampled video frame on disk."""
    index: int  # 1-based, capture order
    path: str


class ExtractionResult(BaseModel):
    """Text pulled out of a file plus type-specific metadata."""
    text: str
    metadata: dict[str, Any] = {}


class AnalysisResult(BaseModel):
    """Structured reading of the model's reply."""
    explanation: str
    summary: str = ""
    key_points: list[str] = []
    model: str | None = None
    tokens_used: int | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None


class ExtractionResponse(BaseModel):
    """Response from the extract_content tool."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    extracted_text: str | None = Field(default=None, alias="extractedText")
    ai_explanation: str | None = Field(default=None, alias="aiExplanation")
    summary: str | None = None
    key_points: list[str] | None = Field(default=None, alias="keyPoints")
    metadata: dict[str, Any] | None = None
    error: str | None = None
    error_kind: str | None = Field(default=None, alias="errorKind")

    def to_payload(self) -> dict:
        """Dump with camelCase keys, omitting fields that do not apply."""
        return self.model_dump(by_alias=True, exclude_none=True)
