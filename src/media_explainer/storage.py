# src/media_explainer/storage.py
"""Object storage staging backed by a Supabase bucket."""

import logging
import mimetypes
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from supabase import create_client

from media_explainer.config import Settings
from media_explainer.errors import StorageNotConfiguredError, StorageOperationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedObject:
    object_id: str
    public_url: str


def content_type_for(name: str) -> str:
    guessed, _ = mimetypes.guess_type(name)
    return guessed or "application/octet-stream"


class ObjectStorage:
    """Upload, download and delete objects in a single bucket."""

    def __init__(self, client: Any, bucket: str):
        self.client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls, settings: Settings) -> "ObjectStorage | None":
        """Return a storage client, or None when Supabase is not configured."""
        if not settings.storage_configured:
            logger.info("Supabase not configured - URL staging unavailable (uploads still work)")
            return None
        client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info(f"Supabase storage enabled (bucket: {settings.supabase_bucket})")
        return cls(client, settings.supabase_bucket)

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def make_object_id(self, name: str) -> str:
        """Unique object name keeping the original extension."""
        return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}{Path(name).suffix}"

    def upload(self, data: bytes, name: str) -> StagedObject:
        object_id = self.make_object_id(name)
        try:
            self._bucket().upload(
                object_id,
                data,
                {
                    "content-type": content_type_for(name),
                    "cache-control": "3600",
                    "upsert": "false",
                },
            )
        except Exception as e:
            raise StorageOperationError(
                f"Storage upload failed: {e}", operation="upload", object_id=object_id
            ) from e

        try:
            public_url = self._bucket().get_public_url(object_id)
        except Exception as e:
            # The object exists but the caller never learns its id; remove it here
            self._discard(object_id)
            raise StorageOperationError(
                f"Storage public URL lookup failed: {e}", operation="public_url", object_id=object_id
            ) from e
        return StagedObject(object_id=object_id, public_url=public_url)

    def _discard(self, object_id: str) -> None:
        try:
            self._bucket().remove([object_id])
        except Exception as e:
            logger.warning(f"Failed to remove orphaned object {object_id}: {e}")

    def download(self, object_id: str) -> bytes:
        try:
            return self._bucket().download(object_id)
        except Exception as e:
            raise StorageOperationError(
                f"Storage download failed: {e}", operation="download", object_id=object_id
            ) from e

    def delete(self, object_id: str) -> None:
        try:
            self._bucket().remove([object_id])
        except Exception as e:
            raise StorageOperationError(
                f"Storage delete failed: {e}", operation="delete", object_id=object_id
            ) from e


def require_storage(storage: ObjectStorage | None) -> ObjectStorage:
    if storage is None:
        raise StorageNotConfiguredError(
            "Object storage is not configured: set SUPABASE_URL and SUPABASE_ANON_KEY "
            "to process URL inputs"
        )
    return storage
