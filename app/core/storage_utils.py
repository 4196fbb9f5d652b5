# app/core/storage_utils.py
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from app.core.config import Settings, get_settings
from app.core.errors import StorageError, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredBlob:
    """Where a written file ended up: its stored name and retrievable path."""

    filename: str
    path: str


class BlobSink(Protocol):
    def put(self, original_filename: str, data: bytes) -> StoredBlob: ...

    def delete(self, path: str) -> None: ...


def sanitize_filename(original: str | None) -> str:
    """
    Keep only the final path component and drop characters that are
    awkward in URLs. Falls back to "file" for empty names.
    """
    name = (original or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    name = "".join(c if c.isalnum() or c in "._-" else "_" for c in name)
    name = name.lstrip(".")
    return name or "file"


def generate_filename(original: str | None, now_ms: int | None = None) -> str:
    """
    Timestamp-prefixed original filename.

    Example:
        generate_filename("sunset.png", 1700000000000) -> "1700000000000-sunset.png"
    """
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{stamp}-{sanitize_filename(original)}"


class LocalBlobSink:
    """
    Files on the local disk under `root`, exposed at `public_prefix`
    (served by the StaticFiles mount in app.main).
    """

    def __init__(self, root: str | Path, public_prefix: str = "/files"):
        self.root = Path(root)
        self.public_prefix = public_prefix.rstrip("/")

    def put(self, original_filename: str, data: bytes) -> StoredBlob:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            stamp = int(time.time() * 1000)
            # "xb" refuses to overwrite; bump the stamp on a same-millisecond clash.
            while True:
                filename = generate_filename(original_filename, stamp)
                try:
                    with open(self.root / filename, "xb") as fh:
                        fh.write(data)
                    break
                except FileExistsError:
                    stamp += 1
        except OSError as e:
            raise StorageError(f"Could not store {original_filename!r}") from e

        return StoredBlob(filename=filename, path=f"{self.public_prefix}/{filename}")

    def delete(self, path: str) -> None:
        prefix = f"{self.public_prefix}/"
        if not path.startswith(prefix):
            return
        target = self.root / sanitize_filename(path[len(prefix):])
        target.unlink(missing_ok=True)


class SupabaseBlobSink:
    """
    Files in a Supabase Storage bucket; `path` is the public URL.

    Uploads never overwrite: a name already taken in the bucket gets the
    next millisecond stamp, the same way LocalBlobSink handles a clash.
    """

    max_attempts = 5

    def __init__(self, bucket: str = "assets", client=None):
        if client is None:
            from app.core.supabase_client import supabase_admin

            client = supabase_admin()
        self.bucket = bucket
        self.client = client

    def put(self, original_filename: str, data: bytes) -> StoredBlob:
        storage = self.client.storage.from_(self.bucket)
        stamp = int(time.time() * 1000)
        for _ in range(self.max_attempts):
            filename = generate_filename(original_filename, stamp)
            object_path = f"uploads/{filename}"
            try:
                storage.upload(object_path, data, {"upsert": "false"})
                break
            except Exception as e:
                if not _is_duplicate(e):
                    raise StorageError(f"Could not store {original_filename!r}") from e
                stamp += 1
        else:
            raise StorageError(f"Could not store {original_filename!r}")
        url = storage.get_public_url(object_path)
        return StoredBlob(filename=filename, path=url)

    def delete(self, path: str) -> None:
        object_path = self.extract_path_from_public_url(path)
        if object_path:
            self.client.storage.from_(self.bucket).remove([object_path])

    def extract_path_from_public_url(self, url: str) -> str | None:
        """
        Given a public URL, extract the object path relative to the bucket.

        Example:
            https://<proj>.supabase.co/storage/v1/object/public/assets/uploads/x.png
            -> 'uploads/x.png'
        """
        marker = f"/storage/v1/object/public/{self.bucket}/"
        idx = url.find(marker)
        if idx == -1:
            return None
        return url[idx + len(marker):].split("?", 1)[0]


def _is_duplicate(exc: Exception) -> bool:
    # Storage answers 409 "Duplicate" when the object already exists.
    text = str(exc)
    return "Duplicate" in text or "409" in text


def build_blob_sink(settings: Settings) -> BlobSink:
    if settings.STORAGE_BACKEND == "supabase":
        return SupabaseBlobSink(settings.SUPABASE_BUCKET)
    return LocalBlobSink(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_PREFIX)


@lru_cache
def get_blob_sink() -> BlobSink:
    """FastAPI dependency; overridable in tests."""
    return build_blob_sink(get_settings())


def read_upload_file(upload_file, max_bytes: int) -> bytes:
    """
    Read an incoming multipart file, refusing anything over `max_bytes`.
    Reads one byte past the limit so oversized files are never fully buffered.
    """
    data = upload_file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationFailed(
            f"File {upload_file.filename!r} is too large (max {max_bytes} bytes)"
        )
    return data


def discard_blobs(sink: BlobSink, paths: list[str]) -> None:
    """
    Best-effort cleanup of already-written blobs. Failures are logged;
    the caller is already handling a more important error or delete.
    """
    for path in paths:
        try:
            sink.delete(path)
        except Exception:
            logger.exception(f"Could not remove blob {path}")
