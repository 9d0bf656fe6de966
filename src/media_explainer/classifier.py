# src/media_explainer/classifier.py
"""File type detection by extension."""

from pathlib import Path

from media_explainer.models import FileType

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".tiff", ".webp"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".avi", ".mov", ".mkv", ".webm", ".flv"})
AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".ogg", ".m4a", ".flac", ".aac"})
DOC_EXTENSIONS = frozenset({".doc", ".docx"})
PDF_EXTENSIONS = frozenset({".pdf"})
TEXT_EXTENSIONS = frozenset({".txt"})

EXTENSIONS_BY_TYPE = {
    FileType.IMAGE: IMAGE_EXTENSIONS,
    FileType.VIDEO: VIDEO_EXTENSIONS,
    FileType.AUDIO: AUDIO_EXTENSIONS,
    FileType.DOC: DOC_EXTENSIONS,
    FileType.PDF: PDF_EXTENSIONS,
    FileType.TEXT: TEXT_EXTENSIONS,
}


def detect_file_type(path: str | Path) -> FileType:
    """Map a file path to its FileType. Unrecognized extensions give UNKNOWN."""
    ext = Path(path).suffix.lower()
    for file_type, extensions in EXTENSIONS_BY_TYPE.items():
        if ext in extensions:
            return file_type
    return FileType.UNKNOWN


def supported_formats() -> dict[str, list[str]]:
    """Extensions grouped by type, without the leading dot."""
    return {
        file_type.value: sorted(ext.lstrip(".") for ext in extensions)
        for file_type, extensions in EXTENSIONS_BY_TYPE.items()
    }
