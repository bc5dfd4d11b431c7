"""Repoint one reference: resolve the victim and target, guard, commit.

This is the library entry point the CLI drives. Every refusal surfaces as a
GitPointError subclass whose ``exit_code`` the caller maps to a process
status; nothing here exits the process.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Union

from git_point.exceptions import (
    AmbiguousReferenceError,
    ReferenceExistsError,
    StoreError,
)
from git_point.models.refs import (
    Ambiguous,
    KnownVictim,
    NewRefKind,
    NewVictim,
    ResolvedReference,
    TargetRevision,
    shorten_ref_name,
)
from git_point.models.transaction import PointResult
from git_point.operations.resolver import find_ambiguous_references
from git_point.operations.revision import check_revision_ambiguity
from git_point.operations.transaction import build_request, commit
from git_point.operations.worktree import ensure_not_checked_out

if TYPE_CHECKING:
    from git_point.models.config import PointConfig
    from git_point.storage.repositories import ReferenceStore

logger = logging.getLogger(__name__)


def resolve_victim(
    store: ReferenceStore,
    name: str,
    *,
    new_kind: Optional[NewRefKind] = None,
) -> Union[KnownVictim, NewVictim]:
    """Resolve the ref that will be moved.

    Args:
        store: The reference store.
        name: Short or fully qualified ref name as typed by the user.
        new_kind: When set, ``name`` is created under this namespace
            instead of looked up.

    Returns:
        A KnownVictim for an existing ref, a NewVictim for creation.

    Raises:
        ReferenceExistsError: If creation was requested and the ref exists.
        AmbiguousReferenceError: If ``name`` matches refs in several
            namespaces.
        StoreError: If the ref cannot be found or read.
    """
    if new_kind is not None:
        victim = NewVictim.create(new_kind, name)
        existing = store.try_find_reference(victim.name)
        if existing is not None:
            raise ReferenceExistsError(victim.name, existing.target)
        return victim

    try:
        found = find_ambiguous_references(store, name)
    except StoreError as e:
        raise StoreError(f"while finding reference '{name}': {e}") from e

    if isinstance(found, Ambiguous):
        raise AmbiguousReferenceError(found.requested, found.candidates)

    reference = found.reference
    if reference.is_symbolic:
        logger.debug("%s is symbolic, moving %s", reference.name, reference.referent)
    if reference.target is None:
        raise StoreError(f"{reference.referent} does not point at any commit yet")

    oid = store.peel_to_commit(reference.target)
    return KnownVictim(
        resolved=ResolvedReference(
            revspec=name,
            name=reference.referent,
            short_name=shorten_ref_name(reference.referent),
            oid=oid,
            raw_target=reference.target,
            summary=store.commit_summary(oid),
        )
    )


def resolve_target(store: ReferenceStore, revspec: str) -> TargetRevision:
    """Evaluate the revision the victim will point at.

    Raises:
        AmbiguousReferenceError: If a ref name inside ``revspec`` is
            ambiguous.
        RevisionParseError: If ``revspec`` is malformed or names no commit.
        StoreError: If the store cannot be read.
    """
    try:
        found = check_revision_ambiguity(store, revspec)
    except StoreError as e:
        raise StoreError(f"while parsing revspec '{revspec}': {e}") from e

    if isinstance(found, Ambiguous):
        raise AmbiguousReferenceError(found.requested, found.candidates, revspec=revspec)

    oid = store.peel_to_commit(store.resolve_revision(revspec))
    return TargetRevision(revspec=revspec, oid=oid, summary=store.commit_summary(oid))


def point(
    store: ReferenceStore,
    config: PointConfig,
    from_: str,
    to: str,
) -> PointResult:
    """Move ref ``from_`` to the commit named by ``to``.

    Args:
        store: The reference store.
        config: Invocation settings (creation kind, guard override, reflog
            prefix).
        from_: The ref to move or create.
        to: A revision spec naming the new target.

    Returns:
        The PointResult describing victim, target and committed edit.
    """
    victim = resolve_victim(store, from_, new_kind=config.new_kind)

    if isinstance(victim, KnownVictim):
        ensure_not_checked_out(store, victim.name, allow=config.allow_worktree)

    target = resolve_target(store, to)
    request = build_request(victim, target, prefix=config.reflog_prefix)
    result = commit(store, request)

    logger.debug("pointed %s at %s", result.name, result.new)
    return PointResult(victim=victim, target=target, transaction=result)
