# tests/test_fetcher.py
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from media_explainer.artifacts import ArtifactTracker, RequestContext
from media_explainer.errors import (
    DownloadError,
    DownloadFailure,
    MalformedUrlError,
    StorageNotConfiguredError,
    UploadNotFoundError,
)
from media_explainer.fetcher import MediaFetcher, display_name_for_url, guess_extension
from media_explainer.models import SourceKind
from media_explainer.storage import StagedObject


class FakeResponse:
    def __init__(self, chunks, headers=None, status_error=None):
        self.chunks = chunks
        self.headers = headers or {}
        self.status_error = status_error

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_error:
            raise self.status_error

    def iter_content(self, chunk_size=1):
        yield from self.chunks


def url_context(url, storage=None):
    return RequestContext(source=url, input_kind=SourceKind.URL, artifacts=ArtifactTracker(storage=storage))


def test_detect_url_source():
    fetcher = MediaFetcher(uploads_dir="/uploads", temp_dir="/tmp")
    assert fetcher.detect_source("https://example.com/file.pdf") == SourceKind.URL
    assert fetcher.detect_source("HTTP://EXAMPLE.COM/a.png") == SourceKind.URL
    assert fetcher.detect_source("www.example.com/a.png") == SourceKind.URL


def test_detect_upload_source():
    fetcher = MediaFetcher(uploads_dir="/uploads", temp_dir="/tmp")
    assert fetcher.detect_source("video.mp4") == SourceKind.UPLOAD
    assert fetcher.detect_source("/data/report.pdf") == SourceKind.UPLOAD


def test_validate_local_file_not_found():
    fetcher = MediaFetcher(uploads_dir="/nonexistent", temp_dir="/tmp")
    with pytest.raises(UploadNotFoundError, match="File not found"):
        fetcher.get_local_path("missing.mp4")


def test_validate_local_file_exists():
    with tempfile.TemporaryDirectory() as tmpdir:
        test_file = Path(tmpdir) / "test.mp4"
        test_file.touch()

        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir="/tmp")
        assert fetcher.get_local_path("test.mp4") == test_file.resolve()
        assert fetcher.get_local_path(str(test_file)) == test_file.resolve()


def test_absolute_path_outside_uploads_is_rejected():
    with tempfile.TemporaryDirectory() as uploads, tempfile.TemporaryDirectory() as elsewhere:
        victim = Path(elsewhere) / "thesis.dat"
        victim.write_bytes(b"years of work")
        fetcher = MediaFetcher(uploads_dir=uploads, temp_dir=uploads)

        with pytest.raises(UploadNotFoundError, match="must be inside"):
            fetcher.get_local_path(str(victim))

        assert victim.exists()


@pytest.mark.parametrize("name", ["../notes.txt", "sub/../../notes.txt", "."])
def test_relative_escape_from_uploads_is_rejected(name):
    with tempfile.TemporaryDirectory() as root:
        uploads = Path(root) / "uploads"
        uploads.mkdir()
        (uploads / "sub").mkdir()
        outside = Path(root) / "notes.txt"
        outside.write_text("keep me")
        fetcher = MediaFetcher(uploads_dir=str(uploads), temp_dir=str(uploads))

        with pytest.raises(UploadNotFoundError):
            fetcher.get_local_path(name)

        assert outside.exists()


def test_resolve_upload_passes_through_and_tracks():
    with tempfile.TemporaryDirectory() as tmpdir:
        upload = Path(tmpdir) / "notes.txt"
        upload.write_text("hello")
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir)
        context = RequestContext(source="notes.txt", input_kind=SourceKind.UPLOAD, artifacts=ArtifactTracker())

        path = fetcher.resolve("notes.txt", context)

        assert path == upload.resolve()
        assert context.display_name == "notes.txt"
        assert [h.location for h in context.artifacts.handles] == [str(upload.resolve())]


@pytest.mark.parametrize("url", ["http://", "ftp://example.com/a.pdf", "https:///nohost.txt"])
def test_malformed_url(url):
    fetcher = MediaFetcher(uploads_dir="/uploads", temp_dir="/tmp", stage_url_inputs=False)
    with pytest.raises(MalformedUrlError):
        fetcher.resolve(url, url_context(url))


def test_www_url_gets_scheme():
    fetcher = MediaFetcher(uploads_dir="/uploads", temp_dir="/tmp")
    assert fetcher.normalize_url("www.example.com/a.pdf") == "https://www.example.com/a.pdf"


def test_guess_extension():
    assert guess_extension("https://x.com/files/Report.PDF", None) == ".pdf"
    assert guess_extension("https://x.com/download?id=1", "image/png; charset=binary") == ".png"
    assert guess_extension("https://x.com/download", "application/x-unknown") == ".bin"


def test_display_name_for_url():
    assert display_name_for_url("https://x.com/a/My%20Notes.txt") == "My Notes.txt"
    assert display_name_for_url("https://x.com/") == "downloaded-file"


def test_download_writes_file_and_tracks_it():
    with tempfile.TemporaryDirectory() as tmpdir:
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir)
        context = url_context("https://example.com/doc.txt")
        response = FakeResponse([b"hello ", b"world"], headers={"Content-Length": "11"})

        with patch("media_explainer.fetcher.requests.get", return_value=response):
            path = fetcher.download_url("https://example.com/doc.txt", context)

        assert path.suffix == ".txt"
        assert path.read_bytes() == b"hello world"
        assert context.artifacts.handles[0].location == str(path)


def test_download_rejects_declared_oversize():
    with tempfile.TemporaryDirectory() as tmpdir:
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir, max_bytes=10)
        context = url_context("https://example.com/big.mp4")
        response = FakeResponse([b"x"], headers={"Content-Length": "1000"})

        with patch("media_explainer.fetcher.requests.get", return_value=response):
            with pytest.raises(DownloadError) as exc_info:
                fetcher.download_url("https://example.com/big.mp4", context)

        assert exc_info.value.reason == DownloadFailure.SIZE_LIMIT
        assert context.artifacts.handles == []


def test_download_rejects_streamed_oversize_and_file_is_tracked():
    with tempfile.TemporaryDirectory() as tmpdir:
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir, max_bytes=8)
        context = url_context("https://example.com/big.bin")
        response = FakeResponse([b"12345", b"67890"])

        with patch("media_explainer.fetcher.requests.get", return_value=response):
            with pytest.raises(DownloadError) as exc_info:
                fetcher.download_url("https://example.com/big.bin", context)

        assert exc_info.value.reason == DownloadFailure.SIZE_LIMIT
        assert len(context.artifacts.handles) == 1
        context.artifacts.release_all()
        assert list(Path(tmpdir).iterdir()) == []


def test_download_timeout():
    with tempfile.TemporaryDirectory() as tmpdir:
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir, timeout=1)
        with patch("media_explainer.fetcher.requests.get", side_effect=requests.Timeout("slow")):
            with pytest.raises(DownloadError, match="timed out") as exc_info:
                fetcher.download_url("https://example.com/a.pdf", url_context("https://example.com/a.pdf"))
        assert exc_info.value.reason == DownloadFailure.TIMEOUT


def test_download_network_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir)
        response = FakeResponse([], status_error=requests.HTTPError("404 Client Error"))
        with patch("media_explainer.fetcher.requests.get", return_value=response):
            with pytest.raises(DownloadError, match="404") as exc_info:
                fetcher.download_url("https://example.com/a.pdf", url_context("https://example.com/a.pdf"))
        assert exc_info.value.reason == DownloadFailure.NETWORK


def test_url_without_storage_fails_before_download():
    fetcher = MediaFetcher(uploads_dir="/uploads", temp_dir="/tmp", storage=None)
    context = url_context("https://example.com/a.pdf")
    with patch("media_explainer.fetcher.requests.get") as get:
        with pytest.raises(StorageNotConfiguredError):
            fetcher.resolve("https://example.com/a.pdf", context)
    get.assert_not_called()
    assert context.artifacts.handles == []


def test_url_staging_round_trip():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = MagicMock()
        storage.upload.return_value = StagedObject(object_id="123-abc.txt", public_url="https://cdn/x")
        storage.download.return_value = b"staged copy"
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir, storage=storage)
        context = url_context("https://example.com/notes.txt", storage=storage)

        with patch("media_explainer.fetcher.requests.get", return_value=FakeResponse([b"original"])):
            path = fetcher.resolve("https://example.com/notes.txt", context)

        assert path.name.startswith("process-")
        assert path.read_bytes() == b"staged copy"
        assert context.staged_object_id == "123-abc.txt"
        assert context.display_name == "notes.txt"
        storage.upload.assert_called_once()
        assert storage.upload.call_args.args[0] == b"original"
        kinds = [h.kind.value for h in context.artifacts.handles]
        assert kinds == ["file", "stored_object", "file"]

        context.artifacts.release_all()
        storage.delete.assert_called_once_with("123-abc.txt")
        assert list(Path(tmpdir).iterdir()) == []


def test_url_without_staging_returns_download():
    with tempfile.TemporaryDirectory() as tmpdir:
        fetcher = MediaFetcher(uploads_dir=tmpdir, temp_dir=tmpdir, storage=None, stage_url_inputs=False)
        context = url_context("https://example.com/notes.txt")
        with patch("media_explainer.fetcher.requests.get", return_value=FakeResponse([b"plain"])):
            path = fetcher.resolve("https://example.com/notes.txt", context)
        assert path.read_bytes() == b"plain"
        assert context.staged_object_id is None
