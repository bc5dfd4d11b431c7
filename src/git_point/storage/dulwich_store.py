"""dulwich-backed implementation of the git-point reference store.

DulwichReferenceStore reads refs, objects, reflogs and worktree metadata
straight from a repository on disk, and commits ref edits through dulwich's
lock-file based compare-and-swap primitives (``set_if_equals`` and
``add_if_new``). dulwich appends the reflog record while it still holds the
ref's ``.lock`` file, and only renames the lock into place afterwards.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Iterator, Optional

from dulwich.errors import NotGitRepository, NotTreeError, RefFormatError
from dulwich.file import FileLocked
from dulwich.object_store import tree_lookup_path
from dulwich.objects import Commit, ShaFile, Tag, Tree
from dulwich.reflog import read_reflog
from dulwich.refs import SYMREF, DiskRefsContainer, SymrefLoop
from dulwich.repo import WORKTREES, Repo

from git_point.exceptions import (
    InvalidRefNameError,
    ObjectNotFoundError,
    PreconditionFailedError,
    RepositoryNotFoundError,
    RevisionParseError,
    StoreError,
    StoreUnavailableError,
)
from git_point.models.refs import (
    EMPTY_SUMMARY,
    HEAD_REF,
    LOCAL_BRANCH_PREFIX,
    REMOTE_BRANCH_PREFIX,
    Reference,
    is_pseudo_ref,
    is_valid_ref_name,
    shorten_ref_name,
)
from git_point.models.transaction import ReflogRecord, TransactionRequest, TransactionResult
from git_point.models.worktree import Worktree
from git_point.operations.revision import (
    PeelTo,
    ReflogLookup,
    RevisionDelegate,
    SiblingBranch,
    Traversal,
    parse_revision,
)
from git_point.storage.repositories import ReferenceStore

logger = logging.getLogger(__name__)

# git's ref_rev_parse_rules, in precedence order
_LOOKUP_RULES = (
    "{}",
    "refs/{}",
    "refs/tags/{}",
    "refs/heads/{}",
    "refs/remotes/{}",
    "refs/remotes/{}/HEAD",
)

_PEELED_SUFFIX = b"^{}"
_CHECKOUT_MOVE = re.compile(r"^checkout: moving from (\S+) to (\S+)$")


def _lookup_candidates(name: str) -> Iterator[str]:
    for rule in _LOOKUP_RULES:
        candidate = rule.format(name)
        if candidate.startswith("refs/"):
            if is_valid_ref_name(candidate):
                yield candidate
        elif is_pseudo_ref(candidate):
            yield candidate


class DulwichReferenceStore(ReferenceStore):
    """Reference store over a dulwich ``Repo``."""

    def __init__(self, repo: Repo) -> None:
        self._repo = repo

    @classmethod
    def open(cls, path: str = ".") -> DulwichReferenceStore:
        """Open the repository containing ``path``, searching upward."""
        try:
            repo = Repo.discover(path)
        except NotGitRepository as e:
            raise RepositoryNotFoundError(os.path.abspath(path)) from e
        logger.debug("opened repository at %s", repo.path)
        return cls(repo)

    @property
    def repo(self) -> Repo:
        return self._repo

    def close(self) -> None:
        self._repo.close()

    # ------------------------------------------------------------------
    # Refs
    # ------------------------------------------------------------------

    def _read(self, name: str) -> Optional[Reference]:
        raw = name.encode()
        try:
            contents = self._repo.refs.read_ref(raw)
            if contents is None:
                return None
            if not contents.startswith(SYMREF):
                return Reference(name=name, target=contents.decode("ascii"))
            chain, sha = self._repo.refs.follow(raw)
            return Reference(
                name=name,
                target=sha.decode("ascii") if sha else None,
                symbolic_target=chain[-1].decode(),
            )
        except SymrefLoop as e:
            raise StoreError(f"symbolic ref loop while reading {name}") from e
        except (OSError, ValueError) as e:
            # ValueError covers undecodable contents and malformed ids
            raise StoreError(f"while reading ref {name}: {e}") from e

    def try_find_reference(self, name: str) -> Optional[Reference]:
        for candidate in _lookup_candidates(name):
            reference = self._read(candidate)
            if reference is not None:
                logger.debug("found ref %s as %s", name, candidate)
                return reference
        return None

    def iter_references(self) -> Iterator[Reference]:
        """Yield every ref, sorted by name.

        Entries that fail to load are logged and skipped; a failure to list
        the refs at all raises StoreError.
        """
        try:
            names = sorted(self._repo.refs.allkeys())
        except OSError as e:
            raise StoreError(f"while listing references: {e}") from e

        for raw in names:
            if raw.endswith(_PEELED_SUFFIX):
                continue
            try:
                reference = self._read(raw.decode())
            except (StoreError, UnicodeDecodeError) as e:
                logger.warning("ignoring error checking for ambiguous reference: %s", e)
                continue
            if reference is not None:
                yield reference

    def _current_value(self, name: str) -> Optional[str]:
        try:
            reference = self._read(name)
        except StoreError as e:
            logger.warning("could not re-read %s: %s", name, e)
            return None
        return reference.target if reference is not None else None

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def _object(self, oid: str) -> ShaFile:
        try:
            return self._repo[oid.encode("ascii")]
        except (KeyError, ValueError, UnicodeEncodeError):
            raise ObjectNotFoundError(oid) from None

    def peel_to_commit(self, oid: str) -> str:
        obj = self._object(oid)
        while isinstance(obj, Tag):
            obj = self._object(obj.object[1].decode("ascii"))
        if not isinstance(obj, Commit):
            raise RevisionParseError(
                oid, f"{obj.id.decode()} is a {obj.type_name.decode()}, not a commit"
            )
        return obj.id.decode("ascii")

    def commit_summary(self, oid: str) -> str:
        obj = self._object(oid)
        if not isinstance(obj, Commit):
            raise RevisionParseError(oid, f"{oid} is not a commit")
        lines = obj.message.splitlines()
        if not lines or not lines[0].strip():
            return EMPTY_SUMMARY
        return lines[0].decode("utf-8", errors="replace")

    def expand_prefix(self, prefix: str, revspec: str) -> str:
        """Expand an abbreviated object id to the single object it names."""
        prefix = prefix.lower()
        if len(prefix) == 40:
            if prefix.encode("ascii") in self._repo.object_store:
                return prefix
            raise RevisionParseError(revspec, f"unknown object {prefix}")

        matches = sorted(
            sha.decode("ascii")
            for sha in self._repo.object_store
            if sha.startswith(prefix.encode("ascii"))
        )
        if not matches:
            raise RevisionParseError(revspec, f"unknown revision or object '{prefix}'")
        if len(matches) > 1:
            shown = ", ".join(m[:12] for m in matches[:5])
            raise RevisionParseError(
                revspec, f"short object id {prefix} is ambiguous: {shown}"
            )
        return matches[0]

    def resolve_revision(self, revspec: str) -> str:
        delegate = EvaluatingDelegate(self, revspec)
        parse_revision(revspec, delegate)
        if delegate.oid is None:
            raise RevisionParseError(revspec, "does not name an object")
        return delegate.oid

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def commit_transaction(self, request: TransactionRequest) -> TransactionResult:
        refs = self._repo.refs
        name = request.name.encode()
        new = request.new.encode("ascii")
        message = request.message.encode()

        if not request.is_create and request.old == request.new:
            actual = self._current_value(request.name)
            if actual != request.old:
                raise PreconditionFailedError(request.name, request.old, request.new, actual)
            return TransactionResult(
                name=request.name,
                old=request.old,
                new=request.new,
                message=request.message,
                changed=False,
            )

        try:
            if request.is_create:
                ok = refs.add_if_new(name, new, message=message)
            else:
                old = request.old.encode("ascii")
                ok = refs.set_if_equals(name, old, new, message=message)
        except RefFormatError as e:
            raise InvalidRefNameError(request.name, str(e), request.old, request.new) from e
        except FileLocked as e:
            raise StoreUnavailableError(
                request.name, request.old, request.new, f"ref is locked: {e}"
            ) from e
        except OSError as e:
            raise StoreUnavailableError(request.name, request.old, request.new, str(e)) from e

        if not ok:
            actual = self._current_value(request.name)
            raise PreconditionFailedError(request.name, request.old, request.new, actual)

        return TransactionResult(
            name=request.name,
            old=request.old,
            new=request.new,
            message=request.message,
            changed=True,
        )

    def read_reflog(self, name: str) -> list[ReflogRecord]:
        # Shared refs log under the common dir, HEAD under the worktree's own
        base = self._repo.commondir() if name.startswith("refs/") else self._repo.controldir()
        path = os.path.join(base, "logs", *name.split("/"))
        try:
            f = open(path, "rb")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreError(f"while reading reflog of {name}: {e}") from e

        with f:
            return [
                ReflogRecord(
                    old=entry.old_sha.decode("ascii"),
                    new=entry.new_sha.decode("ascii"),
                    committer=entry.committer.decode("utf-8", errors="replace"),
                    timestamp=entry.timestamp,
                    timezone=entry.timezone,
                    message=entry.message.decode("utf-8", errors="replace").rstrip("\n"),
                )
                for entry in read_reflog(f)
            ]

    # ------------------------------------------------------------------
    # Worktrees
    # ------------------------------------------------------------------

    def main_worktree(self) -> Worktree:
        common = self._repo.commondir()
        bare = self._repo.get_config().get_boolean((b"core",), b"bare", False)
        if os.path.abspath(self._repo.controldir()) == os.path.abspath(common):
            path = self._repo.path
        else:
            path = os.path.dirname(os.path.abspath(common))
        return Worktree(path=path, admin_dir=common, is_main=True, bare=bare)

    def linked_worktrees(self) -> list[Worktree]:
        root = os.path.join(self._repo.commondir(), WORKTREES)
        if not os.path.isdir(root):
            return []

        worktrees = []
        for entry in sorted(os.listdir(root)):
            admin_dir = os.path.join(root, entry)
            if not os.path.isdir(admin_dir):
                continue
            try:
                with open(os.path.join(admin_dir, "gitdir"), "rb") as f:
                    gitdir = os.fsdecode(f.read().strip())
            except OSError as e:
                logger.warning("ignoring error accessing worktree %s: %s", entry, e)
                continue

            if not os.path.isabs(gitdir):
                gitdir = os.path.abspath(os.path.join(admin_dir, gitdir))
            path = os.path.dirname(gitdir)  # strip the trailing .git
            worktrees.append(
                Worktree(
                    path=path,
                    admin_dir=admin_dir,
                    locked=os.path.exists(os.path.join(admin_dir, "locked")),
                    prunable=not os.path.exists(path),
                )
            )
        return worktrees

    def worktree_checkout(self, worktree: Worktree) -> Optional[str]:
        refs = DiskRefsContainer(self._repo.commondir(), worktree_path=worktree.admin_dir)
        try:
            chain, sha = refs.follow(HEAD_REF.encode())
        except SymrefLoop as e:
            raise StoreError(f"symbolic ref loop in HEAD of {worktree.path}") from e
        except OSError as e:
            raise StoreError(f"while reading HEAD of {worktree.path}: {e}") from e

        if len(chain) < 2:
            if sha is None:
                raise StoreError(f"cannot read HEAD of {worktree.path}")
            return None  # detached
        return chain[-1].decode()


class EvaluatingDelegate(RevisionDelegate):
    """Resolves every revision grammar event against a dulwich repository.

    ``oid`` holds the object the walk currently points at; ``ref`` the last
    ref named, which ``@{<n>}`` and ``@{upstream}`` apply to.
    """

    def __init__(self, store: DulwichReferenceStore, revspec: str) -> None:
        self.store = store
        self.revspec = revspec
        self.oid: Optional[str] = None
        self.ref: Optional[Reference] = None

    def _fail(self, reason: str) -> RevisionParseError:
        return RevisionParseError(self.revspec, reason)

    def _use_ref(self, reference: Reference) -> None:
        if reference.target is None:
            raise self._fail(f"{reference.referent} does not point at any commit yet")
        self.ref = reference
        self.oid = reference.target

    def _current_branch(self) -> str:
        if self.ref is not None:
            return self.ref.referent
        return self.store.find_reference(HEAD_REF).referent

    def _commit(self) -> Commit:
        if self.oid is None:
            raise self._fail("navigation without a starting revision")
        obj = self.store._object(self.store.peel_to_commit(self.oid))
        assert isinstance(obj, Commit)
        return obj

    def _name_or_oid(self, name: str) -> None:
        reference = self.store.try_find_reference(name)
        if reference is not None:
            self._use_ref(reference)
        else:
            self.ref = None
            self.oid = self.store.expand_prefix(name, self.revspec)

    def find_ref(self, name: str) -> Optional[bool]:
        self._use_ref(self.store.find_reference(name))
        return None

    def disambiguate_prefix(self, prefix: str) -> Optional[bool]:
        # A ref with a hex-looking name wins over an object prefix, as in git
        self._name_or_oid(prefix)
        return None

    def reflog(self, query: ReflogLookup) -> Optional[bool]:
        # <ref>@{n} reads that ref's own log; a bare @{n} the current branch's
        name = self.ref.name if self.ref is not None else self._current_branch()
        records = self.store.read_reflog(name)
        if query.entry >= len(records):
            raise self._fail(f"log for '{name}' only has {len(records)} entries")
        self.oid = records[-1 - query.entry].new
        self.ref = None
        return None

    def nth_checked_out_branch(self, branch_no: int) -> Optional[bool]:
        previous = []
        for record in reversed(self.store.read_reflog(HEAD_REF)):
            match = _CHECKOUT_MOVE.match(record.message)
            if match:
                previous.append(match.group(1))
        if branch_no > len(previous):
            raise self._fail(f"only {len(previous)} prior checkouts in the HEAD reflog")
        self._name_or_oid(previous[branch_no - 1])
        return None

    def sibling_branch(self, kind: SiblingBranch) -> Optional[bool]:
        branch = self._current_branch()
        if not branch.startswith(LOCAL_BRANCH_PREFIX):
            raise self._fail(f"{branch} is not a local branch")
        short = branch[len(LOCAL_BRANCH_PREFIX):]
        section = (b"branch", short.encode())
        config = self.store.repo.get_config()

        try:
            if kind is SiblingBranch.UPSTREAM:
                remote = config.get(section, b"remote")
                merge = config.get(section, b"merge").decode()
                if remote == b".":
                    target = merge
                else:
                    target = f"{REMOTE_BRANCH_PREFIX}{remote.decode()}/{shorten_ref_name(merge)}"
            else:
                remote = self._push_remote(config, section)
                target = f"{REMOTE_BRANCH_PREFIX}{remote}/{short}"
        except KeyError:
            raise self._fail(f"no {kind} configured for branch '{short}'") from None

        self._use_ref(self.store.find_reference(target))
        return None

    @staticmethod
    def _push_remote(config, section: tuple[bytes, bytes]) -> str:
        for key_section, key in (
            (section, b"pushRemote"),
            ((b"remote",), b"pushDefault"),
            (section, b"remote"),
        ):
            try:
                return config.get(key_section, key).decode()
            except KeyError:
                continue
        raise KeyError(section)

    def traverse(self, kind: Traversal) -> Optional[bool]:
        commit = self._commit()
        if kind.kind == "ancestor":
            for _ in range(kind.n):
                if not commit.parents:
                    raise self._fail(f"{commit.id.decode()} has no parent")
                commit = self.store._object(commit.parents[0].decode("ascii"))
            self.oid = commit.id.decode("ascii")
        elif kind.n == 0:
            self.oid = commit.id.decode("ascii")
        else:
            if kind.n > len(commit.parents):
                raise self._fail(f"{commit.id.decode()} has no parent {kind.n}")
            self.oid = commit.parents[kind.n - 1].decode("ascii")
        self.ref = None
        return None

    def peel_until(self, kind: PeelTo) -> Optional[bool]:
        if self.oid is None:
            raise self._fail("nothing to peel")
        obj = self.store._object(self.oid)

        if kind.kind == "tag":
            if not isinstance(obj, Tag):
                raise self._fail(f"{self.oid} is not a tag")
        elif kind.kind != "object":
            while isinstance(obj, Tag):
                obj = self.store._object(obj.object[1].decode("ascii"))

        if kind.kind in ("tree", "path") and isinstance(obj, Commit):
            obj = self.store._object(obj.tree.decode("ascii"))

        if kind.kind == "path":
            if not isinstance(obj, Tree):
                raise self._fail(f"{obj.id.decode()} is not a tree-ish")
            try:
                _, sha = tree_lookup_path(
                    self.store.repo.__getitem__, obj.id, (kind.path or "").encode()
                )
            except (KeyError, NotTreeError):
                raise self._fail(f"path '{kind.path}' does not exist") from None
            obj = self.store._object(sha.decode("ascii"))
        elif kind.kind in ("commit", "tree", "blob") and obj.type_name.decode() != kind.kind:
            raise self._fail(f"{obj.id.decode()} cannot be peeled to a {kind.kind}")

        self.oid = obj.id.decode("ascii")
        self.ref = None
        return None

    def find(self, regex: str, negated: bool) -> Optional[bool]:
        try:
            pattern = re.compile(regex)
        except re.error as e:
            raise self._fail(f"invalid regex '{regex}': {e}") from None

        if self.oid is not None:
            starts = [self._commit().id]
        else:
            starts = []
            for reference in self.store.iter_references():
                if reference.target is None:
                    continue
                try:
                    starts.append(self.store.peel_to_commit(reference.target).encode("ascii"))
                except (ObjectNotFoundError, RevisionParseError):
                    continue

        if starts:
            for entry in self.store.repo.get_walker(include=starts):
                message = entry.commit.message.decode("utf-8", errors="replace")
                if bool(pattern.search(message)) != negated:
                    self.oid = entry.commit.id.decode("ascii")
                    self.ref = None
                    return None
        raise self._fail(f"no commit message matches '{regex}'")

    def index_lookup(self, path: str, stage: int) -> Optional[bool]:
        if stage != 0:
            raise self._fail("conflict stage lookups are not supported")
        try:
            index = self.store.repo.open_index()
            entry = index[path.encode()]
        except (KeyError, OSError) as e:
            raise self._fail(f"path '{path}' is not in the index") from e
        sha = getattr(entry, "sha", None)
        if sha is None:
            raise self._fail(f"path '{path}' is conflicted in the index")
        self.oid = sha.decode("ascii")
        self.ref = None
        return None
