# src/media_explainer/artifacts.py
"""Tracking and release of transient artifacts created while handling a request."""

import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from media_explainer.models import FileType, SourceKind

logger = logging.getLogger(__name__)


class ArtifactKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    STORED_OBJECT = "stored_object"


class ObjectDeleter(Protocol):
    def delete(self, object_id: str) -> None: ...


class ReleaseHandle:
    """Releases one artifact. Only the first call does anything."""

    def __init__(self, kind: ArtifactKind, location: str, release: Callable[[], None]):
        self.kind = kind
        self.location = location
        self._release = release
        self.released = False

    def __call__(self) -> None:
        self.release()

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        try:
            self._release()
        except Exception as e:
            # Release never blocks the response
            logger.warning(f"Failed to release {self.kind.value} {self.location}: {e}")

    def __repr__(self) -> str:
        state = "released" if self.released else "pending"
        return f"<ReleaseHandle {self.kind.value} {self.location} {state}>"


def _remove_file(path: Path) -> None:
    path.unlink(missing_ok=True)
    logger.info(f"Cleaned up: {path}")


def _remove_directory(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
        logger.info(f"Cleaned up directory: {path}")


class ArtifactTracker:
    """
    Owns every artifact registered during one unit of work.

    Each track_* call returns a handle that may be released early; whatever is
    still pending is released by release_all(), in reverse registration order.
    Use as a context manager so release happens on every exit path.
    """

    def __init__(self, storage: ObjectDeleter | None = None):
        self.storage = storage
        self.handles: list[ReleaseHandle] = []

    def _track(self, kind: ArtifactKind, location: str, release: Callable[[], None]) -> ReleaseHandle:
        handle = ReleaseHandle(kind, location, release)
        self.handles.append(handle)
        return handle

    def track_file(self, path: str | Path) -> ReleaseHandle:
        path = Path(path)
        return self._track(ArtifactKind.FILE, str(path), lambda: _remove_file(path))

    def track_directory(self, path: str | Path) -> ReleaseHandle:
        path = Path(path)
        return self._track(ArtifactKind.DIRECTORY, str(path), lambda: _remove_directory(path))

    def track_object(self, object_id: str) -> ReleaseHandle:
        if self.storage is None:
            raise RuntimeError("Cannot track a stored object without a storage client")
        storage = self.storage

        def _delete() -> None:
            storage.delete(object_id)
            logger.info(f"Cleaned up stored object: {object_id}")

        return self._track(ArtifactKind.STORED_OBJECT, object_id, _delete)

    @property
    def pending(self) -> list[ReleaseHandle]:
        return [h for h in self.handles if not h.released]

    def release_all(self) -> int:
        """Release everything still pending. Returns how many were released."""
        pending = self.pending
        for handle in reversed(pending):
            handle.release()
        return len(pending)

    def __enter__(self) -> "ArtifactTracker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release_all()


@dataclass
class RequestContext:
    """State owned by a single extraction request."""
    source: str
    input_kind: SourceKind
    artifacts: ArtifactTracker
    file_type: FileType = FileType.UNKNOWN
    display_name: str = ""
    staged_object_id: str | None = None
