"""Read-modify-write commits with retry on conflict.

The catalog itself never retries: a lost compare-and-swap surfaces as
CommitConflictError. This module is the caller side of that contract. It
reloads the table, re-applies the change on the new base and commits again,
backing off exponentially between attempts.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

from metacat.core.catalog import Catalog
from metacat.core.errors import CommitConflictError
from metacat.core.identifiers import IdentifierLike
from metacat.core.models import TableMetadata
from metacat.core.table import Table

logger = logging.getLogger(__name__)


def commit_with_retry(
    catalog: Catalog,
    identifier: IdentifierLike,
    mutate: Callable[[TableMetadata], TableMetadata],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 1.0,
    jitter: bool = True,
) -> Table:
    """
    Apply `mutate` to the latest metadata of a table and commit it.

    Args:
        catalog: Catalog that owns the table.
        identifier: Table to change.
        mutate: Pure function from the current metadata to the desired one.
            It is called once per attempt, always on freshly loaded metadata.
        max_attempts: Total number of commit attempts.
        base_delay: Delay in seconds before the first retry.
        max_delay: Upper bound of any single delay.
        jitter: Whether to randomize delays to spread out competing writers.

    Returns:
        The handle of the committed version.

    Raises:
        CommitConflictError: If every attempt lost against another writer.
        Any other catalog error is raised on the attempt it occurs.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for attempt in range(max_attempts):
        table = catalog.load_table(identifier)
        try:
            return table.commit(mutate(table.metadata))
        except CommitConflictError:
            if attempt == max_attempts - 1:
                raise
            delay = min(base_delay * (2**attempt), max_delay)
            if jitter:
                delay = delay * random.uniform(0.5, 1.5)
            logger.warning(
                "Commit attempt %d for %s conflicted; retrying in %.3fs",
                attempt + 1,
                identifier,
                delay,
            )
            time.sleep(delay)

    raise AssertionError("unreachable")
