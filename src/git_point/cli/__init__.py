"""git-point CLI -- repoint a single git ref.

This module is never imported from git_point/__init__.py. It is only
loaded via the ``git-point`` entry point defined in pyproject.toml.

Every GitPointError that reaches the command is reported on stderr and
turned into the process status through its ``exit_code``.
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from git_point._version import __version__
from git_point.cli.formatting import format_error, format_result, get_console
from git_point.exceptions import GitPointError
from git_point.models.config import PointConfig
from git_point.models.refs import NewRefKind
from git_point.operations.point import point
from git_point.storage.dulwich_store import DulwichReferenceStore

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _configure_logging(level: str, console) -> None:
    """Route the package's log records to stderr through rich."""
    package_logger = logging.getLogger("git_point")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)

    package_logger.addHandler(
        RichHandler(console=console, show_time=False, show_path=False, markup=False)
    )
    package_logger.setLevel(level.upper())


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("from_", metavar="FROM")
@click.argument("to", metavar="TO")
@click.option(
    "-n",
    "--new",
    "new_kind",
    type=click.Choice([kind.value for kind in NewRefKind]),
    default=None,
    help="Create FROM as a new ref of this kind instead of updating it.",
)
@click.option(
    "-W",
    "--allow-worktree",
    is_flag=True,
    default=False,
    help="Move the ref even if a worktree has it checked out.",
)
@click.option(
    "-C",
    "--repo",
    "repo_path",
    default=".",
    envvar="GIT_POINT_REPO",
    type=click.Path(file_okay=False),
    help="Run as if started in this directory.",
)
@click.option(
    "--color",
    type=click.Choice(["auto", "always", "never"]),
    default="auto",
    help="When to use terminal colors.",
)
@click.option(
    "--log-level",
    default="INFO",
    envvar="GIT_POINT_LOG",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    help="Diagnostic verbosity on stderr.",
)
@click.version_option(__version__, prog_name="git-point")
def cli(
    from_: str,
    to: str,
    new_kind: str | None,
    allow_worktree: bool,
    repo_path: str,
    color: str,
    log_level: str,
) -> None:
    """Point ref FROM at revision TO.

    FROM is a branch, tag, remote-tracking branch or fully qualified ref;
    short names that exist in several namespaces are refused. TO is any
    single-revision spec git understands, e.g. ``@``, ``main~2`` or
    ``v1.0^{commit}``.

    Exit status: 0 on success, 1 if FROM is checked out in a worktree,
    2 if --new names an existing ref, 3 if a name is ambiguous, 4 on any
    other error.
    """
    console = get_console(color)
    _configure_logging(log_level, console)

    config = PointConfig(
        repo_path=repo_path,
        allow_worktree=allow_worktree,
        new_kind=NewRefKind(new_kind) if new_kind else None,
    )

    try:
        with DulwichReferenceStore.open(config.repo_path) as store:
            result = point(store, config, from_, to)
    except GitPointError as e:
        logger.debug("git-point failed", exc_info=True)
        format_error(str(e), console)
        raise SystemExit(e.exit_code) from None
    except Exception as e:
        logger.debug("git-point failed unexpectedly", exc_info=True)
        format_error(str(e), console)
        raise SystemExit(GitPointError.exit_code) from None

    format_result(result, console)


def main() -> None:
    """Console script entry point."""
    cli()
