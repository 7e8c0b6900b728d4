"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from metacat.cli.common.output import out
from metacat.core.errors import (
    AlreadyExistsError,
    CommitConflictError,
    NotFoundError,
)

USAGE_ERROR = 2
NOT_FOUND = 3

_EXIT_CODES: dict[type[Exception], int] = {
    NotFoundError: NOT_FOUND,
    AlreadyExistsError: 4,
    CommitConflictError: 5,
}


def exit_code_for(exc: Exception) -> int:
    """Return the process exit code for a catalog error."""
    for exc_type, code in _EXIT_CODES.items():
        if isinstance(exc, exc_type):
            return code
    return 1


def die(msg: str, code: int = 1) -> NoReturn:
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def exit_from_exc(
    exc: Exception, *, message: str | None = None, code: int | None = None
) -> NoReturn:
    """
    Print an error message and exit, chaining the original exception.

    The exit code defaults to the one mapped for the exception type.
    """
    out.error(message or str(exc))
    raise typer.Exit(exit_code_for(exc) if code is None else code) from exc
