"""Reference store backends for git-point."""

from git_point.storage.dulwich_store import DulwichReferenceStore
from git_point.storage.repositories import ReferenceStore

__all__ = ["DulwichReferenceStore", "ReferenceStore"]
