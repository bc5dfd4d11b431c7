"""Reference transaction engine for git-point.

Builds the single ref edit for an invocation and commits it through the
store with a compare-and-swap precondition:

- updating an existing ref requires its current value to equal the value
  seen at resolution time;
- creating a ref requires that it does not exist yet.

Nothing here retries. A failed precondition means the repository changed
under us; the operator re-runs to re-resolve.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

from git_point.exceptions import TransactionError
from git_point.models.config import DEFAULT_REFLOG_PREFIX
from git_point.models.refs import KnownVictim, NewVictim, TargetRevision, validate_ref_name
from git_point.models.transaction import (
    PreviousValue,
    PreviousValueMode,
    TransactionRequest,
    TransactionResult,
)

if TYPE_CHECKING:
    from git_point.storage.repositories import ReferenceStore

logger = logging.getLogger(__name__)


def build_reflog_message(
    victim: Union[KnownVictim, NewVictim],
    target: TargetRevision,
    prefix: str = DEFAULT_REFLOG_PREFIX,
) -> str:
    """Format the reflog record for moving ``victim`` to ``target``."""
    if isinstance(victim, KnownVictim):
        return (
            f"{prefix}: updating {victim.name} "
            f"from {victim.resolved.oid} to {target.oid}"
        )
    return f"{prefix}: created {victim.name} from {target.oid}"


def build_request(
    victim: Union[KnownVictim, NewVictim],
    target: TargetRevision,
    *,
    prefix: str = DEFAULT_REFLOG_PREFIX,
) -> TransactionRequest:
    """Build the transaction that moves ``victim`` to ``target``.

    Known victims are checked against ``raw_target``, the exact value the
    ref held when it was resolved (a tag object for annotated tags).
    """
    if isinstance(victim, KnownVictim):
        expected = PreviousValue.must_match(victim.resolved.raw_target)
    else:
        expected = PreviousValue.must_not_exist()

    return TransactionRequest(
        name=victim.name,
        expected=expected,
        new=target.oid,
        message=build_reflog_message(victim, target, prefix),
    )


def _validate(request: TransactionRequest) -> None:
    validate_ref_name(request.name, old=request.old, new=request.new)

    mode = request.expected.mode
    has_oid = bool(request.expected.oid)
    if mode is PreviousValueMode.MUST_EXIST_AND_MATCH and has_oid:
        return
    if mode is PreviousValueMode.MUST_NOT_EXIST and not has_oid:
        return
    raise TransactionError(
        request.name,
        request.expected.oid,
        request.new,
        f"incoherent precondition {mode}",
    )


def commit(store: ReferenceStore, request: TransactionRequest) -> TransactionResult:
    """Validate and apply one ref edit.

    Args:
        store: The reference store to write.
        request: The edit and its precondition.

    Returns:
        The committed TransactionResult. ``changed`` is False when the ref
        already held ``request.new``.

    Raises:
        InvalidRefNameError: If ``request.name`` is not a valid ref name.
        PreconditionFailedError: If the ref changed since resolution, or
            already exists on creation.
        StoreUnavailableError: On I/O or lock failure.
    """
    _validate(request)

    if logger.isEnabledFor(logging.DEBUG):
        verb = "creating" if request.is_create else "mutating"
        logger.debug("%s ref %s: %r", verb, request.name, request)

    result = store.commit_transaction(request)
    if not result.changed:
        logger.info("%s already points at %s", request.name, request.new)
    return result
