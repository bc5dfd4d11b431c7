"""Abstract reference store interface for git-point.

Defines the narrow set of primitives git-point needs from a revision
control library. No dulwich imports here -- pure abstract contracts.

The concrete implementation is in dulwich_store.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from git_point.models.refs import Reference
    from git_point.models.transaction import (
        ReflogRecord,
        TransactionRequest,
        TransactionResult,
    )
    from git_point.models.worktree import Worktree


class ReferenceStore(ABC):
    """Abstract interface for one open repository's refs and objects.

    Object ids cross this interface as lowercase hex strings, so values
    stay valid after the store is closed.
    """

    @abstractmethod
    def try_find_reference(self, name: str) -> Optional[Reference]:
        """Look up a ref by full or short name using git's precedence rules.

        Tries ``<name>``, ``refs/<name>``, ``refs/tags/<name>``,
        ``refs/heads/<name>``, ``refs/remotes/<name>`` and
        ``refs/remotes/<name>/HEAD`` in that order. Returns None when none
        exist.
        """
        ...

    def find_reference(self, name: str) -> Reference:
        """Like try_find_reference, but raises ReferenceNotFoundError."""
        from git_point.exceptions import ReferenceNotFoundError

        reference = self.try_find_reference(name)
        if reference is None:
            raise ReferenceNotFoundError(name)
        return reference

    @abstractmethod
    def iter_references(self) -> Iterator[Reference]:
        """Yield every ref in the store. Order is not guaranteed."""
        ...

    @abstractmethod
    def peel_to_commit(self, oid: str) -> str:
        """Follow annotated tags from ``oid`` until a commit is reached."""
        ...

    @abstractmethod
    def commit_summary(self, oid: str) -> str:
        """Return the first line of a commit's message."""
        ...

    @abstractmethod
    def resolve_revision(self, revspec: str) -> str:
        """Evaluate a single-revision spec to an object id."""
        ...

    @abstractmethod
    def commit_transaction(self, request: TransactionRequest) -> TransactionResult:
        """Apply one ref edit atomically, checking its precondition.

        The value change and the reflog record are written under the same
        ref lock; a failure while writing either leaves the ref unchanged.

        Raises:
            PreconditionFailedError: If the ref's current value does not
                satisfy ``request.expected``.
            InvalidRefNameError: If the store rejects the ref name.
            StoreUnavailableError: On I/O or lock failure.
        """
        ...

    @abstractmethod
    def main_worktree(self) -> Worktree:
        """Return the main working copy (``bare`` for bare repositories)."""
        ...

    @abstractmethod
    def linked_worktrees(self) -> list[Worktree]:
        """Return every linked worktree registered with the repository."""
        ...

    def list_worktrees(self) -> list[Worktree]:
        """List the main working copy followed by every linked worktree."""
        return [self.main_worktree(), *self.linked_worktrees()]

    @abstractmethod
    def worktree_checkout(self, worktree: Worktree) -> Optional[str]:
        """Return the fully dereferenced ref a worktree's HEAD points at.

        Returns None when the worktree's HEAD is detached.
        """
        ...

    @abstractmethod
    def read_reflog(self, name: str) -> list[ReflogRecord]:
        """Return a ref's reflog, oldest record first."""
        ...

    def close(self) -> None:
        """Release any resources held by the store."""

    def __enter__(self) -> ReferenceStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
