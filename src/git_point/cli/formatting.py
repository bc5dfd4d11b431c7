"""Rich formatting helpers for the git-point CLI.

Everything the CLI prints goes to stderr; stdout is left empty. Rich
auto-detects whether stderr is a terminal and drops colour when piped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from git_point.models.refs import KnownVictim

if TYPE_CHECKING:
    from git_point.models.transaction import PointResult

SHORT_ID_LENGTH = 7

REF_STYLE = "blue"
COMMIT_STYLE = "yellow"
ERROR_STYLE = "bright_red"


def get_console(color: str = "auto") -> Console:
    """Create a stderr Console honouring ``--color``."""
    if color == "always":
        return Console(stderr=True, force_terminal=True, color_system="standard")
    if color == "never":
        return Console(stderr=True, color_system=None)
    return Console(stderr=True)


def style_ref(name: str) -> str:
    return f"[{REF_STYLE}]{escape(name)}[/{REF_STYLE}]"


def style_commit(oid: str) -> str:
    return f"[{COMMIT_STYLE}]{oid[:SHORT_ID_LENGTH]}[/{COMMIT_STYLE}]"


def format_result(result: PointResult, console: Console) -> None:
    """Print the confirmation line for a committed point."""
    victim = result.victim
    target = result.target
    if isinstance(victim, KnownVictim):
        console.print(
            f"Updated {style_ref(victim.name)} "
            f"from {style_commit(victim.resolved.oid)} ({escape(victim.resolved.summary)}) "
            f"to {style_commit(target.oid)} ({escape(target.summary)})",
            highlight=False,
            soft_wrap=True,
        )
    else:
        console.print(
            f"Created {style_ref(victim.name)} "
            f"at {style_commit(target.oid)} ({escape(target.summary)})",
            highlight=False,
            soft_wrap=True,
        )


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(
        f"[{ERROR_STYLE}]error:[/{ERROR_STYLE}] {escape(message)}",
        highlight=False,
        soft_wrap=True,
    )
