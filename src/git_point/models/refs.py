"""Reference domain models for git-point.

Reference is a snapshot of one entry in the ref store. ResolvedReference
and TargetRevision are the immutable views of the ref being moved and the
revision it is moved to. Ambiguous/Unambiguous are the two outcomes of
short-name resolution.
"""

from __future__ import annotations

import enum
import re
from typing import Annotated, Literal, Optional, Union

from dulwich.refs import check_ref_format
from pydantic import BaseModel, Field, field_validator

from git_point.exceptions import InvalidRefNameError

HEAD_REF = "HEAD"
LOCAL_BRANCH_PREFIX = "refs/heads/"
LOCAL_TAG_PREFIX = "refs/tags/"
REMOTE_BRANCH_PREFIX = "refs/remotes/"
NOTES_PREFIX = "refs/notes/"
STASH_REF = "refs/stash"

# Namespaces stripped when displaying a ref
_SHORTENED_PREFIXES = (
    LOCAL_BRANCH_PREFIX,
    LOCAL_TAG_PREFIX,
    REMOTE_BRANCH_PREFIX,
    NOTES_PREFIX,
)

# Top-level pseudo refs (HEAD, ORIG_HEAD, FETCH_HEAD, ...)
_PSEUDO_REF = re.compile(r"^[A-Z][A-Z0-9_]*$")

EMPTY_SUMMARY = "<empty msg>"


def shorten_ref_name(name: str) -> str:
    """Strip the namespace prefix from a fully qualified ref name.

    ``refs/heads/main`` -> ``main``, ``refs/remotes/origin/main`` ->
    ``origin/main``. Names outside the known namespaces are returned as-is.

    Unlike ``dulwich.refs.shorten_ref_name`` this also strips
    ``refs/notes/`` (as libgit2's ``git_reference_shorthand`` does), so a
    notes ref named like a branch counts as a clash. A bare prefix such
    as ``refs/heads/`` is left whole rather than shortened to nothing.
    """
    for prefix in _SHORTENED_PREFIXES:
        if name.startswith(prefix) and len(name) > len(prefix):
            return name[len(prefix):]
    return name


def is_pseudo_ref(name: str) -> bool:
    return bool(_PSEUDO_REF.match(name))


def is_valid_ref_name(name: str) -> bool:
    """True for ``HEAD``, ``refs/stash`` and well-formed names under ``refs/``."""
    if name in (HEAD_REF, STASH_REF):
        return True
    if not name.startswith("refs/"):
        return False
    # check_ref_format wants the name without its leading "refs/"
    return check_ref_format(name[len("refs/"):].encode())


def validate_ref_name(name: str, *, old: Optional[str] = None, new: str = "") -> None:
    """Validate a fully qualified ref name.

    Accepts ``HEAD`` and anything under ``refs/`` that passes git's
    check-ref-format rules.

    Raises InvalidRefNameError on violation. ``old``/``new`` are only
    carried into the error for diagnostics.
    """
    if is_valid_ref_name(name):
        return
    if not name.startswith("refs/"):
        raise InvalidRefNameError(name, "must be HEAD or start with 'refs/'", old, new)
    raise InvalidRefNameError(name, "fails git check-ref-format rules", old, new)


class Reference(BaseModel):
    """A single ref as read from the store.

    ``target`` is the object id the ref resolves to (after following any
    symbolic chain). ``symbolic_target`` names the last ref in that chain
    when the ref is symbolic, e.g. ``HEAD`` -> ``refs/heads/main``.
    """

    model_config = {"frozen": True}

    name: str
    target: Optional[str] = None
    symbolic_target: Optional[str] = None

    @property
    def short_name(self) -> str:
        return shorten_ref_name(self.name)

    @property
    def is_symbolic(self) -> bool:
        return self.symbolic_target is not None

    @property
    def referent(self) -> str:
        """Name of the ref that actually holds the value."""
        return self.symbolic_target or self.name


class ResolvedReference(BaseModel):
    """Snapshot of the ref about to be moved, taken at resolution time.

    ``oid`` is the commit the ref peels to; ``raw_target`` is the value the
    ref file holds, which differs from ``oid`` only for annotated tags.
    The transaction's compare-and-swap uses ``raw_target``.
    """

    model_config = {"frozen": True}

    revspec: str
    name: str
    short_name: str
    oid: str
    raw_target: str
    summary: str = EMPTY_SUMMARY


class TargetRevision(BaseModel):
    """The commit a ref will be moved to."""

    model_config = {"frozen": True}

    revspec: str
    oid: str
    summary: str = EMPTY_SUMMARY


# ---------------------------------------------------------------------------
# Ambiguity results
# ---------------------------------------------------------------------------

class Unambiguous(BaseModel):
    """The requested name maps to exactly one ref."""

    model_config = {"frozen": True}

    kind: Literal["unambiguous"] = "unambiguous"
    reference: Reference


class Ambiguous(BaseModel):
    """The requested name shortens identically from several refs.

    ``candidates`` starts with the ref a naive lookup would have picked,
    followed by every other match in the order it was seen.
    """

    model_config = {"frozen": True}

    kind: Literal["ambiguous"] = "ambiguous"
    requested: str
    candidates: tuple[str, ...]

    @field_validator("candidates")
    @classmethod
    def _at_least_two(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if len(v) < 2:
            raise ValueError("an ambiguous result needs at least two candidates")
        return v


AmbiguityResult = Annotated[Union[Unambiguous, Ambiguous], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Victims
# ---------------------------------------------------------------------------

class NewRefKind(str, enum.Enum):
    """Namespace for a ref created with ``--new``."""

    TAG = "tag"
    BRANCH = "branch"
    REMOTE_BRANCH = "remote-branch"
    RAW = "raw"  # no prefix, taken literally

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value

    def prefix(self) -> str:
        return _KIND_PREFIXES[self]


_KIND_PREFIXES: dict[NewRefKind, str] = {
    NewRefKind.TAG: LOCAL_TAG_PREFIX,
    NewRefKind.BRANCH: LOCAL_BRANCH_PREFIX,
    NewRefKind.REMOTE_BRANCH: REMOTE_BRANCH_PREFIX,
    NewRefKind.RAW: "",
}


class KnownVictim(BaseModel):
    """An existing ref that will be updated."""

    model_config = {"frozen": True}

    kind: Literal["known"] = "known"
    resolved: ResolvedReference

    @property
    def name(self) -> str:
        return self.resolved.name


class NewVictim(BaseModel):
    """A ref that will be created."""

    model_config = {"frozen": True}

    kind: Literal["new"] = "new"
    revspec: str
    name: str
    short_name: str
    ref_kind: NewRefKind

    @classmethod
    def create(cls, ref_kind: NewRefKind, revspec: str) -> NewVictim:
        prefix = ref_kind.prefix()
        return cls(
            revspec=revspec,
            name=f"{prefix}{revspec}",
            short_name=revspec,
            ref_kind=ref_kind,
        )


Victim = Annotated[Union[KnownVictim, NewVictim], Field(discriminator="kind")]
