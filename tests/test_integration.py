# tests/test_integration.py
"""Integration tests - require ffmpeg."""

import pytest
import tempfile
import subprocess
from pathlib import Path

from media_explainer.transcoder import FFmpegTranscoder
from media_explainer.video import VideoPipeline

# Check if ffmpeg is available
FFMPEG_AVAILABLE = subprocess.run(
    ["which", "ffmpeg"], capture_output=True
).returncode == 0


class LabelOcr:
    """Stands in for tesseract; reports which frame file it was given."""

    def recognize(self, image_path):
        return Path(image_path).stem


def make_test_video(path: Path, with_audio: bool = True):
    # Red for 2s, then blue for 2s, optionally with a sine tone
    cmd = [
        "ffmpeg",
        "-f", "lavfi",
        "-i", "color=red:duration=2:size=320x240:rate=30",
        "-f", "lavfi",
        "-i", "color=blue:duration=2:size=320x240:rate=30",
    ]
    if with_audio:
        cmd += [
            "-f", "lavfi",
            "-i", "sine=frequency=440:duration=4",
            "-filter_complex", "[0][1]concat=n=2:v=1:a=0[v]",
            "-map", "[v]", "-map", "2:a",
        ]
    else:
        cmd += ["-filter_complex", "[0][1]concat=n=2:v=1:a=0"]
    cmd += [str(path), "-y"]
    subprocess.run(cmd, capture_output=True, check=True)


@pytest.mark.skipif(not FFMPEG_AVAILABLE, reason="ffmpeg not installed")
class TestIntegration:
    """Integration tests that require ffmpeg."""

    def test_sample_frames_and_audio(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            test_video = Path(tmpdir) / "test.mp4"
            make_test_video(test_video)

            transcoder = FFmpegTranscoder(output_base_dir=str(Path(tmpdir) / "work"))
            out_dir = transcoder.create_output_dir("test")

            frames = transcoder.sample_frames(test_video, out_dir, fps=1)
            assert len(frames) >= 2
            assert frames == sorted(frames)
            assert all(f.exists() for f in frames)

            audio = transcoder.extract_audio(test_video, out_dir)
            assert audio.suffix == ".mp3"
            assert audio.stat().st_size > 0

            info = transcoder.probe(test_video)
            assert info["duration"] == pytest.approx(4, abs=0.5)

    @pytest.mark.asyncio
    async def test_video_pipeline_cleans_up(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            test_video = Path(tmpdir) / "clip.mp4"
            make_test_video(test_video)
            work_dir = Path(tmpdir) / "work"

            pipeline = VideoPipeline(FFmpegTranscoder(output_base_dir=str(work_dir)), LabelOcr(), frame_rate=1)
            result = await pipeline.process(test_video)

            assert result.metadata["audio_extracted"] is True
            assert result.metadata["frame_count"] >= 2
            assert "[Frame 1]: frame-0001" in result.text
            assert list(work_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_silent_video_reports_audio_failure(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            test_video = Path(tmpdir) / "silent.mp4"
            make_test_video(test_video, with_audio=False)
            work_dir = Path(tmpdir) / "work"

            pipeline = VideoPipeline(FFmpegTranscoder(output_base_dir=str(work_dir)), LabelOcr(), frame_rate=1)
            result = await pipeline.process(test_video)

            assert result.metadata["audio_extracted"] is False
            assert "Audio extraction failed" in result.text
            assert result.metadata["frame_count"] >= 2
            assert list(work_dir.iterdir()) == []
