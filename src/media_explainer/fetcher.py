# src/media_explainer/fetcher.py
"""Source detection, URL downloading and staging."""

import logging
import re
import secrets
import time
from pathlib import Path
from urllib.parse import unquote, urlparse

import requests

from media_explainer.artifacts import RequestContext
from media_explainer.errors import (
    DownloadError,
    DownloadFailure,
    MalformedUrlError,
    UploadNotFoundError,
)
from media_explainer.models import SourceKind
from media_explainer.storage import ObjectStorage, require_storage

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "text/plain": ".txt",
}


def guess_extension(url: str, content_type: str | None) -> str:
    """Extension from the URL path, else from the Content-Type header, else .bin."""
    ext = Path(urlparse(url).path).suffix
    if ext:
        return ext.lower()
    if content_type:
        mime = content_type.split(";")[0].strip().lower()
        if mime in MIME_EXTENSIONS:
            return MIME_EXTENSIONS[mime]
    return ".bin"


def display_name_for_url(url: str) -> str:
    name = Path(unquote(urlparse(url).path)).name
    return name or "downloaded-file"


class MediaFetcher:
    """Turns an upload name or a remote URL into a local file ready for extraction."""

    # Patterns that indicate a URL
    URL_PATTERNS = [
        r'^https?://',
        r'^www\.',
    ]

    def __init__(
        self,
        uploads_dir: str,
        temp_dir: str,
        storage: ObjectStorage | None = None,
        max_bytes: int = 500 * 1024 * 1024,
        timeout: float = 60.0,
        stage_url_inputs: bool = True,
    ):
        self.uploads_dir = Path(uploads_dir)
        self.temp_dir = Path(temp_dir)
        self.storage = storage
        self.max_bytes = max_bytes
        self.timeout = timeout
        self.stage_url_inputs = stage_url_inputs

    def detect_source(self, source: str) -> SourceKind:
        """Detect whether source is a URL or an uploaded file."""
        for pattern in self.URL_PATTERNS:
            if re.search(pattern, source.strip(), re.IGNORECASE):
                return SourceKind.URL
        return SourceKind.UPLOAD

    def get_local_path(self, filename: str) -> Path:
        """
        Get full path for an uploaded file.

        Only files inside the uploads directory resolve; absolute paths and
        `..` segments that escape it are rejected, since the resolved upload
        is deleted after processing.
        """
        uploads_root = self.uploads_dir.resolve()
        full_path = (uploads_root / filename).resolve()
        if not full_path.is_relative_to(uploads_root) or full_path == uploads_root:
            raise UploadNotFoundError(
                f"File not found: {filename} (must be inside {self.uploads_dir})", path=str(full_path)
            )
        if not full_path.is_file():
            raise UploadNotFoundError(
                f"File not found: {filename} (looked in {self.uploads_dir})", path=str(full_path)
            )
        return full_path

    def normalize_url(self, url: str) -> str:
        url = url.strip()
        if url.lower().startswith("www."):
            url = f"https://{url}"
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise MalformedUrlError(f"Malformed URL: {url}", url=url)
        return url

    def _temp_name(self) -> str:
        return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}"

    def download_url(self, url: str, context: RequestContext) -> Path:
        """
        Download a remote resource into the temp directory.

        The file is tracked on the request context as soon as it is created,
        so a failed download still gets cleaned up.

        Raises:
            DownloadError: on timeout, size limit or network failure
        """
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + self.timeout
        logger.info(f"Downloading file from: {url}")

        try:
            with requests.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()

                declared = response.headers.get("Content-Length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    raise DownloadError(
                        f"File size {declared} bytes exceeds limit of {self.max_bytes} bytes",
                        DownloadFailure.SIZE_LIMIT,
                        url=url,
                    )

                ext = guess_extension(url, response.headers.get("Content-Type"))
                output_path = self.temp_dir / f"{self._temp_name()}{ext}"
                context.artifacts.track_file(output_path)

                received = 0
                with open(output_path, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if not chunk:
                            continue
                        received += len(chunk)
                        if received > self.max_bytes:
                            raise DownloadError(
                                f"Download exceeded limit of {self.max_bytes} bytes",
                                DownloadFailure.SIZE_LIMIT,
                                url=url,
                            )
                        if time.monotonic() > deadline:
                            raise DownloadError(
                                f"Download timed out after {self.timeout} seconds",
                                DownloadFailure.TIMEOUT,
                                url=url,
                            )
                        fh.write(chunk)

        except requests.Timeout as e:
            raise DownloadError(
                f"Download timed out after {self.timeout} seconds", DownloadFailure.TIMEOUT, url=url
            ) from e
        except requests.RequestException as e:
            raise DownloadError(
                f"Failed to download file: {e}", DownloadFailure.NETWORK, url=url
            ) from e

        logger.info(f"File downloaded successfully to: {output_path} ({received} bytes)")
        return output_path

    def stage(self, downloaded: Path, context: RequestContext) -> Path:
        """Round-trip the download through object storage and return the re-fetched copy."""
        storage = require_storage(self.storage)

        logger.info("Uploading to object storage...")
        staged = storage.upload(downloaded.read_bytes(), downloaded.name)
        context.staged_object_id = staged.object_id
        context.artifacts.track_object(staged.object_id)
        logger.info(f"Staged as {staged.object_id}: {staged.public_url}")

        data = storage.download(staged.object_id)
        process_path = downloaded.with_name(f"process-{downloaded.name}")
        context.artifacts.track_file(process_path)
        process_path.write_bytes(data)
        return process_path

    def resolve(self, source: str, context: RequestContext) -> Path:
        """Produce the local path to extract from, registering every artifact on the context."""
        if context.input_kind == SourceKind.UPLOAD:
            path = self.get_local_path(source)
            context.artifacts.track_file(path)
            context.display_name = path.name
            logger.info(f"Processing uploaded file: {path.name}")
            return path

        url = self.normalize_url(source)
        if self.stage_url_inputs:
            # Fail before any network work when staging cannot happen
            require_storage(self.storage)

        context.display_name = display_name_for_url(url)
        logger.info(f"Processing URL: {url}")
        downloaded = self.download_url(url, context)

        if not self.stage_url_inputs:
            return downloaded
        return self.stage(downloaded, context)
