"""git-point: repoint a git ref, refusing ambiguous names and checked-out branches.

Resolves the ref to move and the revision to move it to, checks that no
worktree has the ref checked out, and commits the change as a single
compare-and-swap with a reflog record.
"""

from git_point._version import __version__

# Entry points
from git_point.operations.point import point, resolve_target, resolve_victim
from git_point.operations.resolver import find_ambiguous_references
from git_point.storage.dulwich_store import DulwichReferenceStore
from git_point.storage.repositories import ReferenceStore

# Models
from git_point.models import (
    Ambiguous,
    KnownVictim,
    NewRefKind,
    NewVictim,
    PointConfig,
    PointResult,
    Reference,
    ResolvedReference,
    TargetRevision,
    TransactionRequest,
    TransactionResult,
    Unambiguous,
    Worktree,
    shorten_ref_name,
)

# Exceptions
from git_point.exceptions import (
    AmbiguousReferenceError,
    GitPointError,
    PreconditionFailedError,
    ReferenceExistsError,
    RevisionParseError,
    StoreError,
    TransactionError,
    WorktreeConflictError,
)

__all__ = [
    "__version__",
    "point",
    "resolve_target",
    "resolve_victim",
    "find_ambiguous_references",
    "DulwichReferenceStore",
    "ReferenceStore",
    "Ambiguous",
    "KnownVictim",
    "NewRefKind",
    "NewVictim",
    "PointConfig",
    "PointResult",
    "Reference",
    "ResolvedReference",
    "TargetRevision",
    "TransactionRequest",
    "TransactionResult",
    "Unambiguous",
    "Worktree",
    "shorten_ref_name",
    "AmbiguousReferenceError",
    "GitPointError",
    "PreconditionFailedError",
    "ReferenceExistsError",
    "RevisionParseError",
    "StoreError",
    "TransactionError",
    "WorktreeConflictError",
]
