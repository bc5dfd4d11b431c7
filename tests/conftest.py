"""Shared test fixtures for git-point.

Builds real on-disk repositories with dulwich in ``tmp_path``: commits are
written object by object, and linked worktrees are laid out by hand the
way ``git worktree add`` leaves them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
from dulwich.objects import Blob, Commit, Tag, Tree
from dulwich.repo import Repo

from git_point.storage.dulwich_store import DulwichReferenceStore

IDENTITY = b"Test User <test@example.com>"
BASE_TIME = 1_700_000_000


class GitFixture:
    """A throwaway repository plus helpers to populate it."""

    def __init__(self, root: Path, repo: Repo) -> None:
        self.root = root
        self.repo = repo
        self._tick = 0

    # -- objects ---------------------------------------------------------

    def commit(
        self,
        message: str,
        parents: tuple[str, ...] = (),
        files: Optional[dict[str, str]] = None,
    ) -> str:
        """Write a commit and return its hex id."""
        store = self.repo.object_store
        tree = Tree()
        for path, content in (files or {"file.txt": message}).items():
            blob = Blob.from_string(content.encode())
            store.add_object(blob)
            tree.add(path.encode(), 0o100644, blob.id)
        store.add_object(tree)

        self._tick += 1
        commit = Commit()
        commit.tree = tree.id
        commit.parents = [p.encode() for p in parents]
        commit.author = commit.committer = IDENTITY
        commit.author_time = commit.commit_time = BASE_TIME + self._tick
        commit.author_timezone = commit.commit_timezone = 0
        commit.message = message.encode()
        store.add_object(commit)
        return commit.id.decode()

    def annotated_tag(self, name: str, target: str, message: str = "release\n") -> str:
        """Write an annotated tag object and its ref; return the tag's id."""
        self._tick += 1
        tag = Tag()
        tag.name = name.encode()
        tag.tagger = IDENTITY
        tag.tag_time = BASE_TIME + self._tick
        tag.tag_timezone = 0
        tag.message = message.encode()
        tag.object = (Commit, target.encode())
        self.repo.object_store.add_object(tag)
        self.set_ref(f"refs/tags/{name}", tag.id.decode())
        return tag.id.decode()

    # -- refs ------------------------------------------------------------

    def set_ref(self, name: str, oid: str) -> None:
        self.repo.refs[name.encode()] = oid.encode()

    def set_head(self, branch: str) -> None:
        self.repo.refs.set_symbolic_ref(b"HEAD", branch.encode())

    def read_ref(self, name: str) -> Optional[str]:
        value = self.repo.refs.read_ref(name.encode())
        return value.decode() if value is not None else None

    def write_loose_ref(self, name: str, contents: bytes) -> None:
        """Write raw bytes as a loose ref file, bypassing validation."""
        path = Path(self.repo.controldir()).joinpath(*name.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(contents)

    def write_reflog(self, name: str, moves: list[tuple[Optional[str], str]]) -> None:
        """Replace the reflog of ``name`` with ``(old, new)`` records, oldest first."""
        path = Path(self.repo.controldir()).joinpath("logs", *name.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = []
        for i, (old, new) in enumerate(moves):
            lines.append(
                f"{old or '0' * 40} {new} {IDENTITY.decode()} {BASE_TIME + i} +0000\tmove {i}\n"
            )
        path.write_text("".join(lines))

    # -- worktrees -------------------------------------------------------

    def add_worktree(self, name: str, head: str) -> Path:
        """Register a linked worktree whose HEAD is ``head``.

        ``head`` is either a ref name (attached) or a commit id (detached).
        """
        path = self.root.parent / f"wt-{name}"
        path.mkdir()
        admin = Path(self.repo.controldir()) / "worktrees" / name
        admin.mkdir(parents=True)

        if head.startswith("refs/"):
            (admin / "HEAD").write_text(f"ref: {head}\n")
        else:
            (admin / "HEAD").write_text(f"{head}\n")
        (admin / "commondir").write_text("../..\n")
        (admin / "gitdir").write_text(f"{path / '.git'}\n")
        (path / ".git").write_text(f"gitdir: {admin}\n")
        return path


def _configure_identity(repo: Repo) -> None:
    config = repo.get_config()
    config.set((b"user",), b"name", b"Test User")
    config.set((b"user",), b"email", b"test@example.com")
    config.write_to_path()


@pytest.fixture
def git(tmp_path: Path) -> GitFixture:
    """Empty non-bare repository at ``tmp_path/repo``."""
    root = tmp_path / "repo"
    repo = Repo.init(str(root), mkdir=True)
    _configure_identity(repo)
    yield GitFixture(root, repo)
    repo.close()


@pytest.fixture
def history(git: GitFixture) -> dict[str, str]:
    """Two commits A <- B.

    ``main`` stays at A, the checked-out branch ``work`` is at B. Nothing
    has ``main`` checked out.
    """
    a = git.commit("first commit\n")
    b = git.commit("second commit\n", parents=(a,))
    git.set_ref("refs/heads/main", a)
    git.set_ref("refs/heads/work", b)
    git.set_head("refs/heads/work")
    return {"A": a, "B": b}


@pytest.fixture
def store(git: GitFixture) -> DulwichReferenceStore:
    """Store over the fixture repository, opened through discovery."""
    s = DulwichReferenceStore.open(str(git.root))
    yield s
    s.close()
