"""Worktree domain model for git-point."""

from __future__ import annotations

from pydantic import BaseModel


class Worktree(BaseModel):
    """A working copy attached to the repository.

    ``admin_dir`` is the directory that holds the worktree's own ``HEAD``:
    the common git dir for the main working copy, or
    ``<common>/worktrees/<id>`` for a linked one.
    """

    model_config = {"frozen": True}

    path: str
    admin_dir: str
    is_main: bool = False
    bare: bool = False
    locked: bool = False
    prunable: bool = False  # working directory no longer exists
