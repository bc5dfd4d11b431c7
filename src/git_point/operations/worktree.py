"""Worktree guard for git-point.

Moving a ref that some working copy has checked out leaves no tracked file
changed, but the working copy's index no longer matches its branch. The
guard refuses that unless explicitly overridden.

The check is not atomic with the later transaction: another process may
check out the ref in between. That gap is accepted; the transaction's own
compare-and-swap is what protects the ref's value.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from git_point.exceptions import GitPointError, WorktreeConflictError
from git_point.models.refs import shorten_ref_name

if TYPE_CHECKING:
    from git_point.models.worktree import Worktree
    from git_point.storage.repositories import ReferenceStore

logger = logging.getLogger(__name__)


def _worktrees(store: ReferenceStore) -> list[Worktree]:
    """Main working copy plus linked worktrees, skipping what cannot be read."""
    worktrees: list[Worktree] = []
    try:
        worktrees.append(store.main_worktree())
    except (GitPointError, OSError) as e:
        logger.warning("ignoring error accessing main worktree: %s", e)

    try:
        worktrees.extend(store.linked_worktrees())
    except (GitPointError, OSError) as e:
        logger.warning("ignoring error finding active worktrees: %s", e)
    return worktrees


def find_checkout(store: ReferenceStore, reference_name: str) -> Optional[Worktree]:
    """Find a working copy whose HEAD points at ``reference_name``.

    Worktrees whose HEAD cannot be read are logged and skipped. Bare
    repositories have no checkout and are never reported.

    Args:
        store: The reference store.
        reference_name: Fully qualified ref name, e.g. ``refs/heads/main``.

    Returns:
        The first matching worktree, or None.
    """
    for worktree in _worktrees(store):
        if worktree.bare:
            continue
        logger.debug(
            "checking if worktree %s has %s checked out", worktree.path, reference_name
        )
        try:
            checkout = store.worktree_checkout(worktree)
        except (GitPointError, OSError) as e:
            logger.warning(
                "ignoring error discovering worktree %s HEAD: %s", worktree.path, e
            )
            continue

        if checkout == reference_name:
            # A missing directory still holds the ref until pruned; a locked
            # one is expected to come back (e.g. removable media).
            if worktree.prunable and not worktree.locked:
                logger.warning(
                    "worktree %s no longer exists; 'git worktree prune' releases %s",
                    worktree.path,
                    shorten_ref_name(reference_name),
                )
            return worktree
    return None


def is_checked_out_elsewhere(store: ReferenceStore, reference_name: str) -> bool:
    """True if any working copy has ``reference_name`` checked out."""
    return find_checkout(store, reference_name) is not None


def ensure_not_checked_out(
    store: ReferenceStore,
    reference_name: str,
    *,
    allow: bool = False,
) -> None:
    """Block mutation of a checked-out ref.

    Args:
        store: The reference store.
        reference_name: Fully qualified ref name about to be moved.
        allow: Skip the scan entirely (``--allow-worktree``).

    Raises:
        WorktreeConflictError: If a working copy has the ref checked out
            and ``allow`` is False.
    """
    if allow:
        logger.debug("worktree guard skipped for %s", reference_name)
        return

    worktree = find_checkout(store, reference_name)
    if worktree is not None:
        raise WorktreeConflictError(shorten_ref_name(reference_name), worktree.path)
