"""Transaction models for git-point.

A TransactionRequest describes exactly one ref edit together with the
precondition the store must check before applying it.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, model_validator

from git_point.models.refs import TargetRevision, Victim


class PreviousValueMode(str, enum.Enum):
    """What the ref must look like before the edit is applied."""

    MUST_NOT_EXIST = "must_not_exist"
    MUST_EXIST_AND_MATCH = "must_exist_and_match"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class PreviousValue(BaseModel):
    """Compare-and-swap precondition for a ref edit."""

    model_config = {"frozen": True}

    mode: PreviousValueMode
    oid: Optional[str] = None

    @model_validator(mode="after")
    def _oid_matches_mode(self) -> PreviousValue:
        if self.mode is PreviousValueMode.MUST_EXIST_AND_MATCH and not self.oid:
            raise ValueError("must_exist_and_match requires the expected oid")
        if self.mode is PreviousValueMode.MUST_NOT_EXIST and self.oid is not None:
            raise ValueError("must_not_exist cannot carry an expected oid")
        return self

    @classmethod
    def must_not_exist(cls) -> PreviousValue:
        return cls(mode=PreviousValueMode.MUST_NOT_EXIST)

    @classmethod
    def must_match(cls, oid: str) -> PreviousValue:
        return cls(mode=PreviousValueMode.MUST_EXIST_AND_MATCH, oid=oid)


class TransactionRequest(BaseModel):
    """A single atomic ref edit."""

    model_config = {"frozen": True}

    name: str
    expected: PreviousValue
    new: str
    message: str

    @property
    def is_create(self) -> bool:
        return self.expected.mode is PreviousValueMode.MUST_NOT_EXIST

    @property
    def old(self) -> Optional[str]:
        return self.expected.oid


class TransactionResult(BaseModel):
    """Outcome of a committed transaction.

    ``changed`` is False when the ref already held the requested value,
    in which case no reflog record is written.
    """

    model_config = {"frozen": True}

    name: str
    old: Optional[str] = None
    new: str
    message: str
    changed: bool = True


class ReflogRecord(BaseModel):
    """One line of a ref's reflog."""

    model_config = {"frozen": True}

    old: str
    new: str
    committer: str
    timestamp: int
    timezone: int
    message: str


class PointResult(BaseModel):
    """Everything a completed ``point`` invocation resolved and wrote."""

    model_config = {"frozen": True}

    victim: Victim
    target: TargetRevision
    transaction: TransactionResult
