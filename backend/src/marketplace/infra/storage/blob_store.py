from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import BinaryIO, Protocol

from marketplace.services.errors import ValidationError

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPES = frozenset({"application/zip", "application/x-zip-compressed", "application/octet-stream"})
_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredFile:
    file_url: str
    file_name: str
    size: int


class BlobStore(Protocol):
    def store(self, file_name: str, content_type: str | None, stream: BinaryIO) -> StoredFile: ...

    def discard(self, stored: StoredFile) -> None: ...


class LocalBlobStore:
    """
    Validate-then-store for submission archives on local disk.

    Only ``.zip`` files with a zip-ish content type are accepted, up to
    ``max_bytes``. Files land as ``<millis>-<original name>`` under
    ``root`` and are addressed by ``<url_prefix>/<stored name>``.
    """

    def __init__(self, root: str | Path, max_bytes: int, url_prefix: str | None = None) -> None:
        self._root = Path(root)
        self._max_bytes = max_bytes
        self._url_prefix = (url_prefix if url_prefix is not None else PurePath(root).as_posix()).rstrip("/")
        self._root.mkdir(parents=True, exist_ok=True)

    def store(self, file_name: str, content_type: str | None, stream: BinaryIO) -> StoredFile:
        original = self._validate_name(file_name, content_type)
        stored_name, out = self._reserve(original)
        target = self._root / stored_name

        size = 0
        try:
            with out:
                while chunk := stream.read(_CHUNK_SIZE):
                    size += len(chunk)
                    if size > self._max_bytes:
                        raise ValidationError(f"File exceeds maximum size of {self._max_bytes} bytes")
                    out.write(chunk)
        except Exception:
            target.unlink(missing_ok=True)
            raise

        if size == 0:
            target.unlink(missing_ok=True)
            raise ValidationError("Uploaded file is empty")

        logger.info("Stored upload %s (%d bytes)", stored_name, size)
        return StoredFile(file_url=f"{self._url_prefix}/{stored_name}", file_name=original, size=size)

    def discard(self, stored: StoredFile) -> None:
        """Removes a file whose submission was never recorded."""
        (self._root / PurePath(stored.file_url).name).unlink(missing_ok=True)
        logger.info("Discarded upload %s", stored.file_url)

    def _reserve(self, original: str) -> tuple[str, BinaryIO]:
        millis = time.time_ns() // 1_000_000
        while True:
            stored_name = f"{millis}-{original}"
            try:
                return stored_name, (self._root / stored_name).open("xb")
            except FileExistsError:
                millis += 1

    def _validate_name(self, file_name: str, content_type: str | None) -> str:
        # Drop any client-supplied directories.
        original = PurePath((file_name or "").replace("\\", "/")).name
        if not original:
            raise ValidationError("Please upload a ZIP file")
        if not original.lower().endswith(".zip") or (content_type or "").lower() not in ZIP_CONTENT_TYPES:
            raise ValidationError("Only ZIP files are allowed")
        return original
