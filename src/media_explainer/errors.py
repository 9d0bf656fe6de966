# src/media_explainer/errors.py
"""Error kinds raised by the extraction pipeline."""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    UPLOAD_NOT_FOUND = "upload_not_found"
    MALFORMED_URL = "malformed_url"
    DOWNLOAD_FAILED = "download_failed"
    STORAGE_NOT_CONFIGURED = "storage_not_configured"
    STORAGE_OPERATION_FAILED = "storage_operation_failed"
    EXTRACTION_FAILED = "extraction_failed"
    VIDEO_STAGE_FAILED = "video_stage_failed"
    MODEL_UNAVAILABLE = "model_unavailable"
    MODEL_CALL_FAILED = "model_call_failed"


class DownloadFailure(Enum):
    TIMEOUT = "timeout"
    SIZE_LIMIT = "size_limit"
    NETWORK = "network"


class PipelineError(Exception):
    """Base error for every failure the pipeline knows how to report."""

    kind: ErrorKind

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class UnsupportedTypeError(PipelineError):
    """File type has no extraction strategy."""
    kind = ErrorKind.UNSUPPORTED_TYPE


class UploadNotFoundError(PipelineError):
    """Uploaded file does not exist."""
    kind = ErrorKind.UPLOAD_NOT_FOUND


class MalformedUrlError(PipelineError):
    """Source looked like a URL but cannot be fetched."""
    kind = ErrorKind.MALFORMED_URL


class DownloadError(PipelineError):
    """Error downloading a remote resource."""
    kind = ErrorKind.DOWNLOAD_FAILED

    def __init__(self, message: str, reason: DownloadFailure, **context: Any):
        super().__init__(message, reason=reason.value, **context)
        self.reason = reason


class StorageNotConfiguredError(PipelineError):
    """Object storage credentials are missing."""
    kind = ErrorKind.STORAGE_NOT_CONFIGURED


class StorageOperationError(PipelineError):
    """Object storage upload, download or delete failed."""
    kind = ErrorKind.STORAGE_OPERATION_FAILED


class ExtractionError(PipelineError):
    """A type-specific extractor could not read the file."""
    kind = ErrorKind.EXTRACTION_FAILED

    def __init__(self, message: str, file_type: str, **context: Any):
        super().__init__(message, file_type=file_type, **context)
        self.file_type = file_type


class VideoStageError(PipelineError):
    """Audio extraction or frame sampling failed."""
    kind = ErrorKind.VIDEO_STAGE_FAILED

    def __init__(self, message: str, stage: str, **context: Any):
        super().__init__(message, stage=stage, **context)
        self.stage = stage


class ModelUnavailableError(PipelineError):
    """Language model is not configured."""
    kind = ErrorKind.MODEL_UNAVAILABLE


class ModelCallError(PipelineError):
    """Language model request failed."""
    kind = ErrorKind.MODEL_CALL_FAILED
