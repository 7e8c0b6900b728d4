"""Workspace client for the Unity Catalog volume object store."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from databricks.sdk import WorkspaceClient
from databricks.sdk.core import Config

from metacat.core.config import DATABRICKS_PROFILE_ENV
from metacat.core.errors import BackendError


class AuthError(BackendError):
    """Raised when no Databricks credentials are available for the warehouse."""


def normalize_host(host: str | None) -> str | None:
    """Drop the query string and trailing slash of a workspace URL."""
    # Browser URLs carry `?o=<workspace-id>`, which breaks SDK request paths.
    if not host:
        return host
    parts = urlsplit(host)
    return urlunsplit((parts.scheme, parts.netloc, parts.path.rstrip("/"), "", ""))


def _login_hint(profile: str | None) -> str:
    if profile:
        return f"run `databricks auth login --profile {profile}`"
    return f"run `databricks auth login` or set {DATABRICKS_PROFILE_ENV}"


def get_workspace_client(profile: str | None = None) -> WorkspaceClient:
    """Return a client authenticated through `profile` or the SDK's default chain."""
    try:
        cfg = Config(profile=profile) if profile else Config()
    except ValueError as exc:
        raise AuthError(
            f"Databricks credentials for the warehouse are unavailable ({exc}); "
            f"{_login_hint(profile)}"
        ) from exc
    cfg.host = normalize_host(cfg.host)
    return WorkspaceClient(config=cfg)
