# src/media_explainer/extractors.py
"""Per-type extraction strategies and the dispatcher that routes between them."""

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Awaitable, Callable, Iterator, Protocol

import docx
from pypdf import PdfReader

from media_explainer.errors import ExtractionError, PipelineError, UnsupportedTypeError
from media_explainer.models import ExtractionResult, FileType
from media_explainer.transcoder import FFmpegTranscoder

logger = logging.getLogger(__name__)

NO_TEXT_IN_IMAGE = "No text found in image"
NO_TEXT_IN_PDF = "No text found in PDF"
NO_TEXT_IN_DOCUMENT = "No text found in document"
EMPTY_TEXT_FILE = "Empty text file"

SPEECH_TO_TEXT_NOTE = (
    "Note: Speech-to-text transcription requires external API integration.\n"
    "Recommended services:\n"
    "- OpenAI Whisper API\n"
    "- Google Cloud Speech-to-Text\n"
    "- AssemblyAI\n"
    "- AWS Transcribe"
)

Handler = Callable[[Path], Awaitable[ExtractionResult]]


class OcrEngine(Protocol):
    def recognize(self, image_path: str | Path) -> str: ...


@contextmanager
def wrap_errors(file_type: FileType, label: str) -> Iterator[None]:
    """Re-raise extractor failures as ExtractionError tagged with the file type."""
    try:
        yield
    except PipelineError:
        raise
    except Exception as e:
        raise ExtractionError(f"{label} failed: {e}", file_type=file_type.value) from e


def extract_image_text(path: Path, ocr: OcrEngine) -> ExtractionResult:
    with wrap_errors(FileType.IMAGE, "Image OCR"):
        text = ocr.recognize(path).strip()
    logger.info(f"Extracted {len(text)} characters from image")
    return ExtractionResult(text=text or NO_TEXT_IN_IMAGE)


def extract_pdf_text(path: Path) -> ExtractionResult:
    with wrap_errors(FileType.PDF, "PDF extraction"):
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
    text = "\n".join(pages).strip()
    logger.info(f"Extracted {len(text)} characters from PDF ({len(pages)} pages)")
    return ExtractionResult(text=text or NO_TEXT_IN_PDF, metadata={"page_count": len(pages)})


LEGACY_DOC_MESSAGE = "Legacy .doc files cannot be read; save the document as .docx and try again"


def extract_doc_text(path: Path) -> ExtractionResult:
    # python-docx only reads the OOXML format
    if path.suffix.lower() == ".doc":
        raise ExtractionError(LEGACY_DOC_MESSAGE, file_type=FileType.DOC.value)

    with wrap_errors(FileType.DOC, "Document extraction"):
        document = docx.Document(str(path))
        paragraphs = [p.text for p in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                paragraphs.append("\t".join(cell.text for cell in row.cells))
    text = "\n".join(paragraphs).strip()
    logger.info(f"Extracted {len(text)} characters from document")
    return ExtractionResult(text=text or NO_TEXT_IN_DOCUMENT, metadata={"paragraph_count": len(paragraphs)})


def extract_plain_text(path: Path) -> ExtractionResult:
    with wrap_errors(FileType.TEXT, "Text file reading"):
        text = path.read_text(encoding="utf-8").strip()
    logger.info(f"Read {len(text)} characters from text file")
    return ExtractionResult(text=text or EMPTY_TEXT_FILE, metadata={"character_count": len(text)})


def describe_audio(path: Path, transcoder: FFmpegTranscoder) -> ExtractionResult:
    """Audio has no transcription; report what ffprobe can tell."""
    with wrap_errors(FileType.AUDIO, "Audio processing"):
        info = transcoder.probe(path)

    duration = info["duration"]
    duration_text = f"{round(duration)} seconds" if duration is not None else "Unknown"
    text = (
        "=== AUDIO CONTENT ===\n\n"
        f"Audio File: {path.name}\n"
        f"Duration: {duration_text}\n"
        f"Format: {info['format'] or 'Unknown'}\n\n"
        "--- Transcription ---\n"
        f"{SPEECH_TO_TEXT_NOTE}\n\n"
        "=== END OF AUDIO CONTENT ==="
    )
    return ExtractionResult(
        text=text,
        metadata={"duration_seconds": duration, "format": info["format"]},
    )


def in_thread(func: Callable[[Path], ExtractionResult]) -> Handler:
    """Adapt a blocking strategy into an awaitable handler."""
    async def handler(path: Path) -> ExtractionResult:
        return await asyncio.to_thread(func, path)
    return handler


class ExtractionDispatcher:
    """Routes a classified file to its extraction strategy."""

    def __init__(self, handlers: dict[FileType, Handler]):
        expected = set(FileType) - {FileType.UNKNOWN}
        missing = expected - set(handlers)
        if missing:
            names = ", ".join(sorted(t.value for t in missing))
            raise ValueError(f"No extraction handler registered for: {names}")
        if FileType.UNKNOWN in handlers:
            raise ValueError("UNKNOWN must not have an extraction handler")
        self.handlers = dict(handlers)

    @classmethod
    def create(cls, ocr: OcrEngine, transcoder: FFmpegTranscoder, video) -> "ExtractionDispatcher":
        """Build the standard handler table. `video` is a VideoPipeline."""
        return cls({
            FileType.IMAGE: in_thread(lambda p: extract_image_text(p, ocr)),
            FileType.VIDEO: video.process,
            FileType.AUDIO: in_thread(lambda p: describe_audio(p, transcoder)),
            FileType.PDF: in_thread(extract_pdf_text),
            FileType.DOC: in_thread(extract_doc_text),
            FileType.TEXT: in_thread(extract_plain_text),
        })

    async def extract(self, path: str | Path, file_type: FileType) -> ExtractionResult:
        handler = self.handlers.get(file_type)
        if handler is None:
            raise UnsupportedTypeError(
                f"Unsupported file type: {Path(path).suffix or file_type.value}",
                file_type=file_type.value,
            )
        logger.info(f"Extracting {file_type.value} content from {Path(path).name}")
        return await handler(Path(path))
