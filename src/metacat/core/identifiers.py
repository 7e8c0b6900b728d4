"""Namespace and table identifiers.

A namespace is an ordered sequence of non-empty segments. For storage and
display it is projected to a single dotted string; segments may therefore
never contain the separator, which keeps the projection exactly reversible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union

SEPARATOR = "."


def _check_segment(segment: str) -> str:
    """Validate a single namespace/table segment and return it unchanged."""
    if not isinstance(segment, str):
        raise ValueError(f"Identifier segments must be strings, got {type(segment).__name__}.")
    if not segment or not segment.strip():
        raise ValueError("Identifier contains an empty segment.")
    if SEPARATOR in segment:
        raise ValueError(
            f"Identifier segment {segment!r} must not contain {SEPARATOR!r}."
        )
    return segment


@dataclass(frozen=True)
class Namespace:
    """Hierarchical grouping of tables, compared segment-wise."""

    levels: tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.levels, str):
            raise ValueError(
                f"Namespace levels must be a sequence of segments, not the string {self.levels!r}; "
                "use Namespace.parse for dotted strings."
            )
        levels = tuple(self.levels)
        if not levels:
            raise ValueError("Namespace must have at least one segment.")
        for level in levels:
            _check_segment(level)
        object.__setattr__(self, "levels", levels)

    @classmethod
    def of(cls, *levels: str) -> Namespace:
        """Build a namespace from positional segments."""
        return cls(tuple(levels))

    @classmethod
    def parse(cls, value: str) -> Namespace:
        """Split `a.b.c` into a namespace of three segments."""
        return cls(tuple(value.split(SEPARATOR)))

    def render(self) -> str:
        """Return the dotted string form used for storage and display."""
        return SEPARATOR.join(self.levels)

    def __str__(self) -> str:
        return self.render()


@dataclass(frozen=True)
class TableIdentifier:
    """Namespace-qualified table name."""

    namespace: Namespace
    name: str

    def __post_init__(self) -> None:
        _check_segment(self.name)

    @classmethod
    def of(cls, namespace: NamespaceLike, name: str) -> TableIdentifier:
        """Build an identifier from a namespace (dotted string, segments or Namespace)."""
        return cls(namespace=to_namespace(namespace), name=name)

    @classmethod
    def parse(cls, value: str) -> TableIdentifier:
        """
        Parse `ns1.ns2.table` into an identifier.

        The last segment is the table name; everything before it is the
        namespace, which must have at least one segment.
        """
        parts = value.strip().split(SEPARATOR)
        if len(parts) < 2:
            raise ValueError(
                "Table identifier must be in the form `namespace.table`."
            )
        return cls(namespace=Namespace(tuple(parts[:-1])), name=parts[-1])

    def render(self) -> str:
        return f"{self.namespace.render()}{SEPARATOR}{self.name}"

    def __str__(self) -> str:
        return self.render()


IdentifierLike = Union[TableIdentifier, str]
NamespaceLike = Union[Namespace, str, Iterable[str]]


def to_identifier(identifier: IdentifierLike) -> TableIdentifier:
    """Coerce a dotted string or identifier into a TableIdentifier."""
    if isinstance(identifier, TableIdentifier):
        return identifier
    return TableIdentifier.parse(identifier)


def to_namespace(namespace: NamespaceLike) -> Namespace:
    """Coerce a dotted string, segment iterable or namespace into a Namespace."""
    if isinstance(namespace, Namespace):
        return namespace
    if isinstance(namespace, str):
        return Namespace.parse(namespace.strip())
    return Namespace(tuple(namespace))
