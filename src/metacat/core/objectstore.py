"""Object store interface.

The catalog only needs whole-object reads and writes addressed by an opaque
location string. Implementations raise BackendError for any I/O failure,
including a missing object.
"""

from __future__ import annotations

from typing import Protocol


class ObjectStore(Protocol):
    """Path-addressable blob store."""

    def get(self, path: str) -> bytes:
        """Return the bytes stored at `path`."""
        ...

    def put(self, path: str, data: bytes) -> None:
        """Write `data` to `path`, replacing any existing object."""
        ...

    def copy(self, src: str, dst: str) -> None:
        """Copy the object at `src` to `dst`."""
        ...
