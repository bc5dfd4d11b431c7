"""Revision-spec grammar walker for git-point.

Walks a single-revision spec (see gitrevisions(7)) and reports each grammar
event to a delegate, one method per event. The walker itself resolves
nothing: a delegate decides what each event means.

Two delegates exist:

- ``DisambiguationDelegate`` (here) only cares about bare ref names and
  runs the ambiguity check on each one.
- ``EvaluatingDelegate`` (in the dulwich store) resolves every event to an
  object id.

A delegate method may return ``False`` to abort the walk, which raises
DelegateError. Any other return value continues.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Literal, Optional, Union

from git_point.exceptions import DelegateError, RevisionParseError
from git_point.models.refs import Ambiguous, HEAD_REF, Unambiguous

if TYPE_CHECKING:
    from git_point.storage.repositories import ReferenceStore

logger = logging.getLogger(__name__)

_HEX_PREFIX = re.compile(r"^[0-9a-fA-F]{4,40}$")
_DIGITS = re.compile(r"\d*")
_INDEX_STAGE = re.compile(r"^([0-3]):(.*)$", re.DOTALL)
_PEEL_KINDS = frozenset({"commit", "tree", "blob", "tag", "object"})


# ---------------------------------------------------------------------------
# Event payloads
# ---------------------------------------------------------------------------

class SiblingBranch(str, enum.Enum):
    """Branch related to the current one, as in ``@{upstream}``/``@{push}``."""

    UPSTREAM = "upstream"
    PUSH = "push"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Traversal:
    """``~<n>`` (ancestor) or ``^<n>`` (parent) navigation."""

    kind: Literal["ancestor", "parent"]
    n: int


@dataclass(frozen=True)
class PeelTo:
    """Peel the current object.

    ``kind`` is one of ``commit``/``tree``/``blob``/``tag``/``object``,
    ``""`` for ``^{}`` (peel tags recursively), or ``path`` for ``:<path>``
    lookups inside the current tree-ish.
    """

    kind: str
    path: Optional[str] = None


@dataclass(frozen=True)
class ReflogLookup:
    """``@{<n>}``: the n-th prior value of the current ref."""

    entry: int


# ---------------------------------------------------------------------------
# Delegate protocol
# ---------------------------------------------------------------------------

class RevisionDelegate:
    """Receives grammar events from ``parse_revision``.

    Every event is accepted as a logged no-op. Subclasses override only the
    events they care about.
    """

    def kind(self, kind: str) -> Optional[bool]:
        logger.debug("Delegate::kind(%r)", kind)
        return None

    def find_ref(self, name: str) -> Optional[bool]:
        logger.debug("Delegate::find_ref(%r)", name)
        return None

    def disambiguate_prefix(self, prefix: str) -> Optional[bool]:
        logger.debug("Delegate::disambiguate_prefix(%r)", prefix)
        return None

    def reflog(self, query: ReflogLookup) -> Optional[bool]:
        logger.debug("Delegate::reflog(%r)", query)
        return None

    def nth_checked_out_branch(self, branch_no: int) -> Optional[bool]:
        logger.debug("Delegate::nth_checked_out_branch(%r)", branch_no)
        return None

    def sibling_branch(self, kind: SiblingBranch) -> Optional[bool]:
        logger.debug("Delegate::sibling_branch(%r)", kind)
        return None

    def traverse(self, kind: Traversal) -> Optional[bool]:
        logger.debug("Delegate::traverse(%r)", kind)
        return None

    def peel_until(self, kind: PeelTo) -> Optional[bool]:
        logger.debug("Delegate::peel_until(%r)", kind)
        return None

    def find(self, regex: str, negated: bool) -> Optional[bool]:
        logger.debug("Delegate::find(%r, %r)", regex, negated)
        return None

    def index_lookup(self, path: str, stage: int) -> Optional[bool]:
        logger.debug("Delegate::index_lookup(%r, %r)", path, stage)
        return None

    def done(self) -> None:
        """Called once after the last event."""


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------

def _emit(revspec: str, event: Callable[..., Optional[bool]], *args: object) -> None:
    if event(*args) is False:
        raise DelegateError(revspec, event.__name__)


def _split_regex(text: str) -> tuple[str, bool]:
    """Handle the ``!-`` (negate) and ``!!`` (literal ``!``) regex prefixes."""
    if text.startswith("!-"):
        return text[2:], True
    if text.startswith("!!"):
        return text[1:], False
    if text.startswith("!"):
        raise ValueError(f"unknown regex modifier in '{text}'")
    return text, False


def _closing_brace(revspec: str, start: int) -> int:
    end = revspec.find("}", start)
    if end == -1:
        raise RevisionParseError(revspec, "unterminated '{'")
    return end


def _base_end(revspec: str) -> int:
    """Index where the bare name at the start of ``revspec`` ends."""
    end = len(revspec)
    for marker in ("~", "^", ":", "@{"):
        idx = revspec.find(marker)
        if idx != -1:
            end = min(end, idx)
    return end


def parse_revision(revspec: str, delegate: RevisionDelegate) -> None:
    """Walk a single-revision spec, reporting each event to ``delegate``.

    Raises:
        RevisionParseError: If the spec is malformed or uses syntax that
            does not name a single revision (ranges, ``^!``, ``^@``).
        DelegateError: If the delegate returns False from an event.
    """
    if not revspec:
        raise RevisionParseError(revspec, "empty revision")

    head = re.split(r"[{:]", revspec, maxsplit=1)[0]
    if ".." in head:
        raise RevisionParseError(revspec, "ranges are not supported; name a single revision")
    if revspec.startswith("^"):
        raise RevisionParseError(revspec, "exclusions are not supported; name a single revision")

    _emit(revspec, delegate.kind, "single")

    if revspec.startswith(":"):
        _parse_colon_form(revspec, delegate)
        delegate.done()
        return

    end = _base_end(revspec)
    name = revspec[:end]
    has_name = bool(name)

    if name == "@":
        _emit(revspec, delegate.find_ref, HEAD_REF)
    elif _HEX_PREFIX.match(name):
        _emit(revspec, delegate.disambiguate_prefix, name)
    elif name:
        _emit(revspec, delegate.find_ref, name)
    elif not revspec.startswith("@{"):
        raise RevisionParseError(revspec, "missing revision before navigation")

    pos = end
    while pos < len(revspec):
        if revspec.startswith("@{", pos):
            close = _closing_brace(revspec, pos + 2)
            content = revspec[pos + 2:close]
            _parse_at_brace(revspec, delegate, content, at_start=(pos == 0 and not has_name))
            pos = close + 1
        elif revspec[pos] == "~":
            pos += 1
            digits = _DIGITS.match(revspec, pos).group()
            pos += len(digits)
            _emit(revspec, delegate.traverse, Traversal("ancestor", int(digits) if digits else 1))
        elif revspec[pos] == "^":
            pos += 1
            if revspec.startswith("{", pos):
                close = _closing_brace(revspec, pos + 1)
                _parse_caret_brace(revspec, delegate, revspec[pos + 1:close])
                pos = close + 1
            elif revspec.startswith(("!", "@"), pos):
                raise RevisionParseError(
                    revspec, f"'^{revspec[pos]}' names more than one revision"
                )
            else:
                digits = _DIGITS.match(revspec, pos).group()
                pos += len(digits)
                _emit(revspec, delegate.traverse, Traversal("parent", int(digits) if digits else 1))
        elif revspec[pos] == ":":
            _emit(revspec, delegate.peel_until, PeelTo("path", revspec[pos + 1:]))
            pos = len(revspec)
        else:
            raise RevisionParseError(
                revspec, f"unexpected character '{revspec[pos]}' at offset {pos}"
            )

    delegate.done()


def _parse_colon_form(revspec: str, delegate: RevisionDelegate) -> None:
    rest = revspec[1:]
    if rest.startswith("/"):
        try:
            regex, negated = _split_regex(rest[1:])
        except ValueError as e:
            raise RevisionParseError(revspec, str(e)) from None
        _emit(revspec, delegate.find, regex, negated)
        return

    match = _INDEX_STAGE.match(rest)
    if match:
        stage, path = int(match.group(1)), match.group(2)
    else:
        stage, path = 0, rest
    if not path:
        raise RevisionParseError(revspec, "empty index path")
    _emit(revspec, delegate.index_lookup, path, stage)


def _parse_at_brace(
    revspec: str,
    delegate: RevisionDelegate,
    content: str,
    *,
    at_start: bool,
) -> None:
    lowered = content.lower()
    if content.isdigit():
        _emit(revspec, delegate.reflog, ReflogLookup(int(content)))
    elif lowered in ("u", "upstream"):
        _emit(revspec, delegate.sibling_branch, SiblingBranch.UPSTREAM)
    elif lowered == "push":
        _emit(revspec, delegate.sibling_branch, SiblingBranch.PUSH)
    elif content.startswith("-") and content[1:].isdigit():
        if not at_start:
            raise RevisionParseError(revspec, "'@{-<n>}' cannot follow a ref name")
        n = int(content[1:])
        if n == 0:
            raise RevisionParseError(revspec, "'@{-0}' is not a valid branch number")
        _emit(revspec, delegate.nth_checked_out_branch, n)
    else:
        raise RevisionParseError(revspec, f"unsupported reflog selector '@{{{content}}}'")


def _parse_caret_brace(revspec: str, delegate: RevisionDelegate, content: str) -> None:
    if content.startswith("/"):
        try:
            regex, negated = _split_regex(content[1:])
        except ValueError as e:
            raise RevisionParseError(revspec, str(e)) from None
        _emit(revspec, delegate.find, regex, negated)
    elif content == "" or content in _PEEL_KINDS:
        _emit(revspec, delegate.peel_until, PeelTo(content))
    else:
        raise RevisionParseError(revspec, f"unknown object type '{content}'")


# ---------------------------------------------------------------------------
# Disambiguation
# ---------------------------------------------------------------------------

class DisambiguationDelegate(RevisionDelegate):
    """Runs the ambiguity check on every bare ref name in a revision spec.

    All other events keep the no-op handling of the base class; the actual
    revision is evaluated separately by the store.
    """

    def __init__(self, store: ReferenceStore) -> None:
        self.store = store
        self.found_refs: Optional[Union[Unambiguous, Ambiguous]] = None

    def find_ref(self, name: str) -> Optional[bool]:
        from git_point.operations.resolver import find_ambiguous_references

        logger.debug("Delegate::find_ref(%r)", name)
        self.found_refs = find_ambiguous_references(self.store, name)
        return None


def check_revision_ambiguity(
    store: ReferenceStore,
    revspec: str,
) -> Optional[Union[Unambiguous, Ambiguous]]:
    """Check every bare ref name in ``revspec`` for ambiguity.

    Returns the result for the bare name in the spec, or None when the spec
    names no ref (e.g. a hex id or ``:/message``).

    Raises:
        RevisionParseError: If the spec is malformed.
        StoreError: If the store cannot be read.
    """
    delegate = DisambiguationDelegate(store)
    parse_revision(revspec, delegate)
    return delegate.found_refs
