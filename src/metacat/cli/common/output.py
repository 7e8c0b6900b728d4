"""Output formatting utilities for the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from prompt_toolkit.styles import Style
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

from metacat.core.models import Schema

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

_PROMPT_STYLE = Style.from_dict(
    {
        "question": "bold ansicyan",
        "answer": "bold ansigreen",
        "pointer": "bold ansigreen",
        "highlighted": "bold ansigreen",
        "selected": "bold ansigreen",
        "checkbox": "ansibrightblack",
        "checkbox-selected": "bold ansigreen",
        "instruction": "ansibrightblack",
        "error": "bold ansired",
    }
)

console = Console(theme=_THEME)


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through the rich console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q(self, message: str) -> str:
        """Prefix prompts so they stand out from log output."""
        return f"[metacat] {message}"

    def info(self, msg: str) -> None:
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        console.print(f"[title]{title}[/]")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def select_many(self, message: str, choices: list[str]) -> list[str]:
        """Prompt for a multi-selection; returns the selected values."""
        if not choices:
            return []
        picked = questionary.checkbox(
            self._q(message),
            choices=choices,
            style=_PROMPT_STYLE,
            instruction="Use ↑/↓, space, a (all), i (invert), enter",
        ).ask()
        return list(picked or [])

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """Ask a yes/no question."""
        console.print("[meta]Use y/n then Enter[/]")
        return bool(
            questionary.confirm(
                self._q(message), default=default, style=_PROMPT_STYLE
            ).ask()
        )

    def tables_table(self, tables: Iterable[Any], title: str = "Tables") -> None:
        """
        Render table identifiers.

        Accepts TableIdentifier values or plain dotted strings.
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Table", style="ok")
        t.add_column("Namespace", style="meta")

        for item in tables:
            if isinstance(item, str):
                t.add_row(item, item.rsplit(".", 1)[0])
            else:
                t.add_row(item.render(), item.namespace.render())

        console.print(t)

    def namespaces_table(self, namespaces: Iterable[Any], title: str = "Namespaces") -> None:
        t = Table(title=title, show_lines=False)
        t.add_column("Namespace", style="ok")
        t.add_column("Levels", style="meta")

        for ns in namespaces:
            t.add_row(ns.render(), str(len(ns.levels)))

        console.print(t)

    def schema_table(self, schema: Schema, title: str = "Schema") -> None:
        t = Table(title=title, show_lines=False)
        t.add_column("ID", style="meta", no_wrap=True)
        t.add_column("Name", style="ok")
        t.add_column("Type")
        t.add_column("Required")
        t.add_column("Doc", style="meta")

        for f in schema.fields:
            t.add_row(str(f.id), f.name, f.type, "yes" if f.required else "no", f.doc or "")

        console.print(t)

    def drop_results_table(self, results: Iterable[Any], title: str = "Drop results") -> None:
        """
        Render per-table drop results.

        Expects objects with `.table`, `.dropped` and optional `.error`
        (like metacat.core.bulk.TableDropResult).
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Table", style="ok")
        t.add_column("Dropped")
        t.add_column("Error", style="err")

        for r in results:
            dropped = "yes" if getattr(r, "dropped", False) else "no"
            t.add_row(str(getattr(r, "table", "")), dropped, str(getattr(r, "error", "") or ""))

        console.print(t)


out = Out()
