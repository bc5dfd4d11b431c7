"""Domain models for git-point."""

from git_point.models.config import PointConfig
from git_point.models.refs import (
    Ambiguous,
    AmbiguityResult,
    KnownVictim,
    NewRefKind,
    NewVictim,
    Reference,
    ResolvedReference,
    TargetRevision,
    Unambiguous,
    Victim,
    is_valid_ref_name,
    shorten_ref_name,
    validate_ref_name,
)
from git_point.models.transaction import (
    PointResult,
    PreviousValue,
    PreviousValueMode,
    ReflogRecord,
    TransactionRequest,
    TransactionResult,
)
from git_point.models.worktree import Worktree

__all__ = [
    "Ambiguous",
    "AmbiguityResult",
    "KnownVictim",
    "NewRefKind",
    "NewVictim",
    "PointConfig",
    "PointResult",
    "PreviousValue",
    "PreviousValueMode",
    "Reference",
    "ReflogRecord",
    "ResolvedReference",
    "TargetRevision",
    "TransactionRequest",
    "TransactionResult",
    "Unambiguous",
    "Victim",
    "Worktree",
    "is_valid_ref_name",
    "shorten_ref_name",
    "validate_ref_name",
]
