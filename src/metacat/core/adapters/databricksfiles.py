from __future__ import annotations

import io
import logging

from databricks.sdk import WorkspaceClient
from databricks.sdk.errors import DatabricksError

from metacat.core.errors import BackendError

logger = logging.getLogger(__name__)


def volume_path(location: str) -> str:
    """
    Map a warehouse location onto a Files API path.

    `dbfs:/Volumes/main/raw/wh/x` and `/Volumes/main/raw/wh/x` both resolve to
    `/Volumes/main/raw/wh/x`.
    """
    if location.startswith("dbfs:"):
        location = location[len("dbfs:"):]
    if not location.startswith("/Volumes/"):
        raise BackendError(
            f"Databricks object store only supports Unity Catalog volume paths, got {location}"
        )
    return location


class DatabricksFilesObjectStore:
    """Object store over the Databricks Files API (Unity Catalog volumes)."""

    def __init__(self, client: WorkspaceClient) -> None:
        self.client = client

    def get(self, path: str) -> bytes:
        target = volume_path(path)
        try:
            response = self.client.files.download(target)
            data = response.contents.read() if response.contents is not None else b""
        except DatabricksError as exc:
            raise BackendError(f"Could not read {path}: {exc}") from exc
        logger.debug("Downloaded %d bytes from %s", len(data), target)
        return data

    def put(self, path: str, data: bytes) -> None:
        target = volume_path(path)
        try:
            self.client.files.upload(target, io.BytesIO(data), overwrite=True)
        except DatabricksError as exc:
            raise BackendError(f"Could not write {path}: {exc}") from exc
        logger.debug("Uploaded %d bytes to %s", len(data), target)

    def copy(self, src: str, dst: str) -> None:
        # The Files API has no server-side copy.
        self.put(dst, self.get(src))
