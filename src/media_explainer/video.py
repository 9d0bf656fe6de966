# src/media_explainer/video.py
"""Video decomposition: audio track plus OCR over sampled frames."""

import asyncio
import logging
from pathlib import Path

from media_explainer.artifacts import ArtifactTracker
from media_explainer.extractors import NO_TEXT_IN_IMAGE, SPEECH_TO_TEXT_NOTE, OcrEngine
from media_explainer.models import ExtractionResult, FrameDescriptor
from media_explainer.transcoder import FFmpegTranscoder

logger = logging.getLogger(__name__)

AUDIO_HEADER = "--- Audio Transcription ---"
FRAMES_HEADER = "--- Frame Text Extraction (OCR) ---"


def format_frame_line(index: int, text: str) -> str:
    return f"[Frame {index}]: {text}"


def combine_sections(audio_text: str, frame_lines: list[str]) -> str:
    return (
        "=== VIDEO CONTENT EXTRACTION ===\n\n"
        f"{AUDIO_HEADER}\n"
        f"{audio_text}\n\n"
        f"{FRAMES_HEADER}\n"
        + "\n".join(frame_lines)
        + "\n\n=== END OF VIDEO CONTENT ==="
    )


class VideoPipeline:
    """
    Splits a video into an audio component and a frame-text component.

    Frames are OCR'd in batches: frames inside a batch run concurrently in
    worker threads, batches run one after another. Output lines always follow
    frame index order. Every intermediate file is removed before process()
    returns.
    """

    def __init__(
        self,
        transcoder: FFmpegTranscoder,
        ocr: OcrEngine,
        frame_rate: float = 0.5,
        batch_size: int = 5,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.transcoder = transcoder
        self.ocr = ocr
        self.frame_rate = frame_rate
        self.batch_size = batch_size

    def _extract_audio(self, video_path: Path, work_dir: Path, artifacts: ArtifactTracker) -> tuple[str, bool]:
        logger.info("Extracting audio from video...")
        try:
            audio_path = self.transcoder.extract_audio(video_path, work_dir)
        except Exception as e:
            logger.warning(f"Audio extraction failed: {e}")
            return f"Audio extraction failed: {e}", False

        artifacts.track_file(audio_path)
        logger.info("Audio extraction completed")
        return f"Audio extracted: {audio_path.name}\n{SPEECH_TO_TEXT_NOTE}", True

    def _sample_frames(self, video_path: Path, frames_dir: Path) -> list[FrameDescriptor]:
        logger.info(f"Extracting frames from video ({self.frame_rate} fps)...")
        paths = self.transcoder.sample_frames(video_path, frames_dir, self.frame_rate)
        return [FrameDescriptor(index=i, path=str(p)) for i, p in enumerate(paths, start=1)]

    async def _ocr_frame(self, frame: FrameDescriptor) -> tuple[int, str]:
        try:
            text = await asyncio.to_thread(self.ocr.recognize, frame.path)
        except Exception as e:
            logger.warning(f"OCR failed for frame {frame.index}: {e}")
            return frame.index, format_frame_line(frame.index, f"OCR failed - {e}")
        return frame.index, format_frame_line(frame.index, text.strip() or NO_TEXT_IN_IMAGE)

    async def ocr_frames(self, frames: list[FrameDescriptor]) -> list[str]:
        """OCR all frames in bounded batches; lines come back in frame index order."""
        results: dict[int, str] = {}
        for start in range(0, len(frames), self.batch_size):
            batch = frames[start:start + self.batch_size]
            for index, line in await asyncio.gather(*(self._ocr_frame(f) for f in batch)):
                results[index] = line
        return [results[index] for index in sorted(results)]

    async def process(self, video_path: Path) -> ExtractionResult:
        logger.info(f"Processing video file: {video_path.name}")
        video_path = Path(video_path)

        with ArtifactTracker() as artifacts:
            work_dir = self.transcoder.create_output_dir(video_path.stem)
            artifacts.track_directory(work_dir)

            audio_text, audio_ok = await asyncio.to_thread(
                self._extract_audio, video_path, work_dir, artifacts
            )

            frames_dir = work_dir / "frames"
            frames_dir.mkdir(exist_ok=True)
            try:
                frames = await asyncio.to_thread(self._sample_frames, video_path, frames_dir)
            except Exception as e:
                logger.error(f"Frame extraction failed: {e}")
                frames = []
                frame_lines = [f"Frame extraction failed: {e}"]
            else:
                logger.info(f"Processing {len(frames)} frames with OCR...")
                frame_lines = await self.ocr_frames(frames)

        return ExtractionResult(
            text=combine_sections(audio_text, frame_lines),
            metadata={
                "frame_count": len(frames),
                "audio_extracted": audio_ok,
                "audio_text": audio_text,
            },
        )
