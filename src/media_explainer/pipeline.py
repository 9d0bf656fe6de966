# src/media_explainer/pipeline.py
"""End-to-end handling of one extraction request."""

import asyncio
import logging
from datetime import datetime, timezone

from media_explainer.analysis import AnalysisSynthesizer
from media_explainer.artifacts import ArtifactTracker, RequestContext
from media_explainer.classifier import detect_file_type
from media_explainer.config import Settings
from media_explainer.errors import PipelineError, UnsupportedTypeError
from media_explainer.extractors import ExtractionDispatcher
from media_explainer.fetcher import MediaFetcher
from media_explainer.models import AnalysisResult, ExtractionResponse, ExtractionResult, FileType
from media_explainer.ocr import TesseractOcr
from media_explainer.storage import ObjectStorage
from media_explainer.transcoder import FFmpegTranscoder
from media_explainer.video import VideoPipeline

logger = logging.getLogger(__name__)


def camel_case(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def build_response(
    extraction: ExtractionResult,
    metadata: dict,
    analysis: AnalysisResult,
) -> ExtractionResponse:
    """Response metadata uses camelCase keys, like the rest of the payload."""
    metadata = {camel_case(key): value for key, value in metadata.items()}
    metadata.update(aiModel=analysis.model, tokensUsed=analysis.tokens_used)
    if analysis.degraded:
        metadata["aiError"] = analysis.error
        metadata["aiErrorKind"] = analysis.error_kind
    return ExtractionResponse(
        success=True,
        extracted_text=extraction.text,
        ai_explanation=analysis.explanation,
        summary=analysis.summary,
        key_points=analysis.key_points,
        metadata=metadata,
    )


def failure_response(error: Exception) -> ExtractionResponse:
    if isinstance(error, PipelineError):
        return ExtractionResponse(success=False, error=error.message, error_kind=error.kind.value)
    return ExtractionResponse(success=False, error=f"Unexpected error: {error}", error_kind="internal")


class ExtractionPipeline:
    """Resolve → classify → extract → analyze → clean up, for one source at a time."""

    def __init__(
        self,
        fetcher: MediaFetcher,
        dispatcher: ExtractionDispatcher,
        synthesizer: AnalysisSynthesizer,
        storage: ObjectStorage | None = None,
    ):
        self.fetcher = fetcher
        self.dispatcher = dispatcher
        self.synthesizer = synthesizer
        self.storage = storage

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExtractionPipeline":
        storage = ObjectStorage.from_settings(settings)
        transcoder = FFmpegTranscoder(output_base_dir=settings.work_dir)
        ocr = TesseractOcr(language=settings.ocr_language)
        video = VideoPipeline(
            transcoder,
            ocr,
            frame_rate=settings.frame_rate,
            batch_size=settings.ocr_batch_size,
        )
        fetcher = MediaFetcher(
            uploads_dir=settings.uploads_dir,
            temp_dir=settings.work_dir,
            storage=storage,
            max_bytes=settings.max_download_bytes,
            timeout=settings.download_timeout,
            stage_url_inputs=settings.stage_url_inputs,
        )
        return cls(
            fetcher=fetcher,
            dispatcher=ExtractionDispatcher.create(ocr, transcoder, video),
            synthesizer=AnalysisSynthesizer(api_key=settings.openai_api_key, model=settings.openai_model),
            storage=storage,
        )

    def new_context(self, source: str) -> RequestContext:
        return RequestContext(
            source=source,
            input_kind=self.fetcher.detect_source(source),
            artifacts=ArtifactTracker(storage=self.storage),
        )

    async def _process(self, context: RequestContext) -> ExtractionResponse:
        path = await asyncio.to_thread(self.fetcher.resolve, context.source, context)

        context.file_type = detect_file_type(path)
        if context.file_type == FileType.UNKNOWN:
            raise UnsupportedTypeError(
                f"Unsupported file type: {path.suffix or '(no extension)'}",
                file_type=context.file_type.value,
            )
        logger.info(f"Processing {context.display_name} ({context.file_type.value})")

        extraction = await self.dispatcher.extract(path, context.file_type)

        metadata = {
            "original_name": context.display_name,
            "file_type": context.file_type.value,
            "processed_at": datetime.now(timezone.utc).isoformat(),
            **extraction.metadata,
        }

        logger.info("Generating AI explanation...")
        analysis = await asyncio.to_thread(
            self.synthesizer.synthesize, extraction.text, context.file_type.value, metadata
        )
        return build_response(extraction, metadata, analysis)

    async def run(self, source: str) -> ExtractionResponse:
        """
        Process one source. Never raises: failures become an error response.

        Every artifact registered on the request context is released before
        this returns, whichever way processing ended.
        """
        context = self.new_context(source)
        with context.artifacts:
            try:
                response = await self._process(context)
            except PipelineError as e:
                logger.error(f"Extraction error ({e.kind.value}): {e}")
                response = failure_response(e)
            except Exception as e:
                logger.exception(f"Unexpected error: {e}")
                response = failure_response(e)
        return response
