# src/media_explainer/transcoder.py
"""Audio extraction, frame sampling and probing with ffmpeg."""

import json
import uuid
import subprocess
from pathlib import Path
from typing import Any

from media_explainer.errors import VideoStageError


class FFmpegTranscoder:
    """Thin wrapper over the ffmpeg and ffprobe command line tools."""

    def __init__(self, output_base_dir: str, timeout: int = 300):
        self.output_base_dir = Path(output_base_dir)
        self.timeout = timeout

    def create_output_dir(self, identifier: str) -> Path:
        """Create a unique output directory for one decomposition."""
        # Use UUID to ensure uniqueness
        unique_id = f"{identifier}_{uuid.uuid4().hex[:8]}"
        output_dir = self.output_base_dir / unique_id
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    def _run(self, cmd: list[str], stage: str, timeout: int | None = None) -> subprocess.CompletedProcess:
        timeout = timeout or self.timeout
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise VideoStageError(f"{cmd[0]} timed out after {timeout} seconds", stage=stage)
        except FileNotFoundError:
            raise VideoStageError(f"{cmd[0]} not found. Ensure it is installed.", stage=stage)

        if result.returncode != 0:
            # ffmpeg outputs to stderr; the tail holds the actual error
            detail = result.stderr.strip().splitlines()[-1:] or ["unknown error"]
            raise VideoStageError(f"{cmd[0]} failed: {detail[0]}", stage=stage)
        return result

    def probe(self, media_path: str | Path) -> dict[str, Any]:
        """Return duration (seconds, may be None) and container format name."""
        cmd = [
            "ffprobe",
            "-v", "error",
            "-show_entries", "format=duration,format_name",
            "-of", "json",
            str(media_path),
        ]
        result = self._run(cmd, stage="probe", timeout=30)

        try:
            fmt = json.loads(result.stdout or "{}").get("format", {})
        except ValueError as e:
            raise VideoStageError(f"Could not parse ffprobe output: {e}", stage="probe")

        duration = fmt.get("duration")
        return {
            "duration": float(duration) if duration not in (None, "N/A") else None,
            "format": fmt.get("format_name"),
        }

    def extract_audio(self, video_path: str | Path, output_dir: Path) -> Path:
        """Extract the audio track as a 128k mp3."""
        output_path = output_dir / f"{Path(video_path).stem}.mp3"
        cmd = [
            "ffmpeg",
            "-i", str(video_path),
            "-vn",
            "-acodec", "libmp3lame",
            "-b:a", "128k",
            str(output_path),
            "-y"  # Overwrite output files
        ]
        self._run(cmd, stage="audio")

        if not output_path.exists():
            raise VideoStageError("Audio extraction produced no output", stage="audio")
        return output_path

    def sample_frames(self, video_path: str | Path, output_dir: Path, fps: float = 0.5) -> list[Path]:
        """
        Sample frames at a fixed rate.

        Args:
            video_path: Path to video file
            output_dir: Directory to save frames
            fps: Frames per second to keep

        Returns:
            Frame paths in capture order
        """
        if fps <= 0:
            raise ValueError("fps must be > 0")

        output_pattern = str(output_dir / "frame-%04d.jpg")
        cmd = [
            "ffmpeg",
            "-i", str(video_path),
            "-vf", f"fps={fps}",
            "-q:v", "2",
            output_pattern,
            "-y"
        ]
        self._run(cmd, stage="frames")

        # Zero-padded names sort in capture order
        return sorted(output_dir.glob("frame-*.jpg"))
