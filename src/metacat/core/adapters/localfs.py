"""Object store on the local filesystem.

Accepts plain paths and `file://` URIs. Writes are atomic via
write-temp-then-rename, so a reader never observes a half-written metadata
file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import uuid
from pathlib import Path
from urllib.parse import unquote, urlparse

from metacat.core.errors import BackendError

logger = logging.getLogger(__name__)


def _to_path(location: str) -> Path:
    """Map a plain path or file:// URI onto a filesystem path."""
    if location.startswith("file:"):
        parsed = urlparse(location)
        return Path(unquote(parsed.path))
    if "://" in location:
        raise BackendError(f"Unsupported location for local object store: {location}")
    return Path(location)


class LocalObjectStore:
    """Filesystem implementation of the ObjectStore interface."""

    def get(self, path: str) -> bytes:
        target = _to_path(path)
        try:
            data = target.read_bytes()
        except OSError as exc:
            raise BackendError(f"Could not read {path}: {exc}") from exc
        logger.debug("Read %d bytes from %s", len(data), target)
        return data

    def put(self, path: str, data: bytes) -> None:
        target = _to_path(path)
        temp_path = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, target)
        except OSError as exc:
            with contextlib.suppress(OSError):
                temp_path.unlink()
            raise BackendError(f"Could not write {path}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(data), target)

    def copy(self, src: str, dst: str) -> None:
        self.put(dst, self.get(src))
