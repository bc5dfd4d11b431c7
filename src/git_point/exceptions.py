"""git-point exception hierarchy.

All git-point exceptions inherit from GitPointError. Each class carries an
``exit_code`` that the CLI uses as the process status when the error
reaches the top level.
"""

from __future__ import annotations

from typing import Optional, Sequence


class GitPointError(Exception):
    """Base exception for all git-point errors."""

    exit_code: int = 4


class AmbiguousReferenceError(GitPointError):
    """Raised when a short ref name matches refs in more than one namespace.

    ``revspec`` is set when the name was found inside a larger revision
    spec (the target), and left as None when the name is the ref to move.
    """

    exit_code = 3

    def __init__(
        self,
        requested: str,
        candidates: Sequence[str],
        revspec: Optional[str] = None,
    ) -> None:
        self.requested = requested
        self.candidates = list(candidates)
        self.revspec = revspec
        if revspec is None:
            msg = (
                f"refspec '{requested}' is ambiguous and must be qualified; "
                f"could be any of: {', '.join(self.candidates)}"
            )
        else:
            msg = (
                f"refname '{requested}' in '{revspec}' is ambiguous and must be "
                f"qualified; could be any of: {', '.join(self.candidates)}"
            )
        super().__init__(msg)


class WorktreeConflictError(GitPointError):
    """Raised when the ref to move is checked out in a working copy."""

    exit_code = 1

    def __init__(self, ref_name: str, worktree_path: str) -> None:
        self.ref_name = ref_name
        self.worktree_path = worktree_path
        super().__init__(
            f"refusing to update ref {ref_name} checked out at {worktree_path}; "
            f"pass --allow-worktree to override"
        )


class ReferenceExistsError(GitPointError):
    """Raised when creation is requested for a ref that already exists."""

    exit_code = 2

    def __init__(self, ref_name: str, oid: Optional[str]) -> None:
        self.ref_name = ref_name
        self.oid = oid
        super().__init__(
            f"refusing to create ref {ref_name} which already exists at "
            f"{oid or '<could not resolve>'}"
        )


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------

class StoreError(GitPointError):
    """Raised when the reference store cannot complete a read."""


class RepositoryNotFoundError(StoreError):
    """Raised when no git repository contains the requested path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"not a git repository (or any parent): {path}")


class ReferenceNotFoundError(StoreError):
    """Raised when a ref name cannot be found under any namespace."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"reference not found: {name}")


class ObjectNotFoundError(StoreError):
    """Raised when an object id is missing from the object database."""

    def __init__(self, oid: str) -> None:
        self.oid = oid
        super().__init__(f"object not found: {oid}")


# ---------------------------------------------------------------------------
# Revision parsing errors
# ---------------------------------------------------------------------------

class RevisionParseError(GitPointError):
    """Raised when a revision spec cannot be parsed or evaluated."""

    def __init__(self, revspec: str, reason: str) -> None:
        self.revspec = revspec
        self.reason = reason
        super().__init__(f"cannot resolve revision '{revspec}': {reason}")


class DelegateError(RevisionParseError):
    """Raised when a revision delegate declines a grammar event."""

    def __init__(self, revspec: str, event: str) -> None:
        self.event = event
        super().__init__(revspec, f"delegate rejected {event}")


# ---------------------------------------------------------------------------
# Transaction errors
# ---------------------------------------------------------------------------

class TransactionError(GitPointError):
    """Base exception for a failed reference transaction.

    Every transaction error records the attempted ref name together with
    the expected old value and the requested new value.
    """

    def __init__(
        self,
        name: str,
        old: Optional[str],
        new: str,
        reason: str,
    ) -> None:
        self.name = name
        self.old = old
        self.new = new
        self.reason = reason
        super().__init__(
            f"cannot update {name} ({old or '<none>'} -> {new}): {reason}"
        )


class PreconditionFailedError(TransactionError):
    """Raised when the ref changed since it was resolved, or already exists."""

    def __init__(
        self,
        name: str,
        old: Optional[str],
        new: str,
        actual: Optional[str],
    ) -> None:
        self.actual = actual
        if old is None:
            reason = f"reference already exists at {actual}"
        elif actual is None:
            reason = "reference no longer exists"
        else:
            reason = f"reference changed to {actual} since it was resolved"
        super().__init__(name, old, new, reason)


class InvalidRefNameError(TransactionError):
    """Raised when a ref name fails namespace validation."""

    def __init__(
        self,
        name: str,
        reason: str,
        old: Optional[str] = None,
        new: str = "",
    ) -> None:
        super().__init__(name, old, new, f"invalid ref name: {reason}")


class StoreUnavailableError(TransactionError):
    """Raised when the store cannot be written (I/O or lock failure)."""
