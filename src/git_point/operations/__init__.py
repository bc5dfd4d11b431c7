"""Resolution, guard and transaction logic for git-point."""

from git_point.operations.point import point, resolve_target, resolve_victim
from git_point.operations.resolver import find_ambiguous_references
from git_point.operations.revision import (
    DisambiguationDelegate,
    RevisionDelegate,
    check_revision_ambiguity,
    parse_revision,
)
from git_point.operations.transaction import build_reflog_message, build_request, commit
from git_point.operations.worktree import (
    ensure_not_checked_out,
    find_checkout,
    is_checked_out_elsewhere,
)

__all__ = [
    "DisambiguationDelegate",
    "RevisionDelegate",
    "build_reflog_message",
    "build_request",
    "check_revision_ambiguity",
    "commit",
    "ensure_not_checked_out",
    "find_ambiguous_references",
    "find_checkout",
    "is_checked_out_elsewhere",
    "parse_revision",
    "point",
    "resolve_target",
    "resolve_victim",
]
