"""Configuration models for git-point.

PointConfig holds per-invocation settings. The CLI builds it from its
options and environment variables; library callers construct it directly.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator

from git_point.models.refs import NewRefKind

DEFAULT_REFLOG_PREFIX = "git-point"


class PointConfig(BaseModel):
    """Settings for one ``point`` invocation."""

    repo_path: str = "."
    allow_worktree: bool = False
    new_kind: Optional[NewRefKind] = None
    reflog_prefix: str = DEFAULT_REFLOG_PREFIX

    @field_validator("reflog_prefix")
    @classmethod
    def _single_line_prefix(cls, v: str) -> str:
        if not v or "\n" in v:
            raise ValueError("reflog prefix must be a non-empty single line")
        return v
