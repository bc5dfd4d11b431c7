"""Tests for the revision-spec grammar walker and its delegates.

Covers:
- Event sequence reported for each supported piece of syntax
- Rejection of ranges, exclusions and multi-revision suffixes
- A delegate returning False aborts the walk
- DisambiguationDelegate only acts on bare ref names
- EvaluatingDelegate resolution against a real repository
"""

import pytest

from git_point.exceptions import (
    AmbiguousReferenceError,
    DelegateError,
    ObjectNotFoundError,
    ReferenceNotFoundError,
    RevisionParseError,
)
from git_point.models import Ambiguous, Unambiguous
from git_point.operations.point import resolve_target
from git_point.operations.revision import (
    PeelTo,
    ReflogLookup,
    RevisionDelegate,
    SiblingBranch,
    Traversal,
    check_revision_ambiguity,
    parse_revision,
)


class RecordingDelegate(RevisionDelegate):
    """Records every event as (name, args)."""

    def __init__(self) -> None:
        self.events = []

    def _record(self, name, *args):
        self.events.append((name, args))

    def kind(self, kind):
        self._record("kind", kind)

    def find_ref(self, name):
        self._record("find_ref", name)

    def disambiguate_prefix(self, prefix):
        self._record("disambiguate_prefix", prefix)

    def reflog(self, query):
        self._record("reflog", query)

    def nth_checked_out_branch(self, branch_no):
        self._record("nth_checked_out_branch", branch_no)

    def sibling_branch(self, kind):
        self._record("sibling_branch", kind)

    def traverse(self, kind):
        self._record("traverse", kind)

    def peel_until(self, kind):
        self._record("peel_until", kind)

    def find(self, regex, negated):
        self._record("find", regex, negated)

    def index_lookup(self, path, stage):
        self._record("index_lookup", path, stage)


def events_for(revspec):
    delegate = RecordingDelegate()
    parse_revision(revspec, delegate)
    # drop the leading kind("single") every walk starts with
    assert delegate.events[0] == ("kind", ("single",))
    return delegate.events[1:]


# ---------------------------------------------------------------------------
# Walker
# ---------------------------------------------------------------------------

class TestParseRevision:
    def test_plain_name(self):
        assert events_for("main") == [("find_ref", ("main",))]

    def test_at_is_head(self):
        assert events_for("@") == [("find_ref", ("HEAD",))]

    def test_hex_prefix(self):
        assert events_for("deadbeef") == [("disambiguate_prefix", ("deadbeef",))]

    def test_hex_prefix_keeps_case(self):
        assert events_for("DeadBeef") == [("disambiguate_prefix", ("DeadBeef",))]

    def test_too_short_for_prefix_is_a_name(self):
        assert events_for("abc") == [("find_ref", ("abc",))]

    def test_navigation(self):
        assert events_for("main~2^2^") == [
            ("find_ref", ("main",)),
            ("traverse", (Traversal("ancestor", 2),)),
            ("traverse", (Traversal("parent", 2),)),
            ("traverse", (Traversal("parent", 1),)),
        ]

    def test_bare_tilde_means_one(self):
        assert events_for("main~")[1] == ("traverse", (Traversal("ancestor", 1),))

    @pytest.mark.parametrize(
        "spec, peel",
        [
            ("v1^{}", PeelTo("")),
            ("v1^{commit}", PeelTo("commit")),
            ("v1^{tree}", PeelTo("tree")),
            ("v1^{tag}", PeelTo("tag")),
        ],
    )
    def test_peel(self, spec, peel):
        assert events_for(spec) == [("find_ref", ("v1",)), ("peel_until", (peel,))]

    def test_tree_path(self):
        assert events_for("main:docs/readme.md") == [
            ("find_ref", ("main",)),
            ("peel_until", (PeelTo("path", "docs/readme.md"),)),
        ]

    def test_reflog_entry(self):
        assert events_for("main@{3}") == [
            ("find_ref", ("main",)),
            ("reflog", (ReflogLookup(3),)),
        ]

    @pytest.mark.parametrize(
        "spec, sibling",
        [
            ("main@{u}", SiblingBranch.UPSTREAM),
            ("main@{upstream}", SiblingBranch.UPSTREAM),
            ("main@{push}", SiblingBranch.PUSH),
        ],
    )
    def test_sibling_branch(self, spec, sibling):
        assert events_for(spec)[1] == ("sibling_branch", (sibling,))

    def test_previous_checkout(self):
        assert events_for("@{-1}") == [("nth_checked_out_branch", (1,))]

    def test_message_search(self):
        assert events_for(":/fix bug") == [("find", ("fix bug", False))]

    def test_negated_message_search(self):
        assert events_for("main^{/!-wip}") == [
            ("find_ref", ("main",)),
            ("find", ("wip", True)),
        ]

    def test_index_lookup(self):
        assert events_for(":2:src/app.py") == [("index_lookup", ("src/app.py", 2))]
        assert events_for(":README") == [("index_lookup", ("README", 0))]

    @pytest.mark.parametrize(
        "spec",
        ["", "main..work", "A...B", "^main", "main^!", "main^@", "main@{-1}", "@{-0}", "v1^{bogus}", "main@{"],
    )
    def test_rejected(self, spec):
        with pytest.raises(RevisionParseError):
            parse_revision(spec, RevisionDelegate())

    def test_delegate_can_abort(self):
        class Refusing(RevisionDelegate):
            def traverse(self, kind):
                return False

        with pytest.raises(DelegateError) as exc_info:
            parse_revision("main~1", Refusing())
        assert exc_info.value.event == "traverse"


# ---------------------------------------------------------------------------
# Disambiguation
# ---------------------------------------------------------------------------

class TestCheckRevisionAmbiguity:
    def test_unambiguous_name(self, history, store):
        result = check_revision_ambiguity(store, "main~0")
        assert isinstance(result, Unambiguous)
        assert result.reference.name == "refs/heads/main"

    def test_ambiguous_name_inside_spec(self, git, history, store):
        git.set_ref("refs/heads/release", history["A"])
        git.set_ref("refs/tags/release", history["B"])

        result = check_revision_ambiguity(store, "release^{commit}")

        assert isinstance(result, Ambiguous)
        assert set(result.candidates) == {"refs/heads/release", "refs/tags/release"}

    def test_no_name_in_spec(self, history, store):
        assert check_revision_ambiguity(store, history["A"][:10]) is None
        assert check_revision_ambiguity(store, ":/first") is None


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

class TestResolveRevision:
    def test_head_alias(self, history, store):
        assert store.resolve_revision("@") == history["B"]
        assert store.resolve_revision("HEAD") == history["B"]

    def test_branch_and_ancestor(self, history, store):
        assert store.resolve_revision("work") == history["B"]
        assert store.resolve_revision("work~1") == history["A"]
        assert store.resolve_revision("work^") == history["A"]
        assert store.resolve_revision("work^0") == history["B"]

    def test_walking_past_root_fails(self, history, store):
        with pytest.raises(RevisionParseError, match="has no parent"):
            store.resolve_revision("main~1")

    def test_abbreviated_id(self, history, store):
        assert store.resolve_revision(history["A"][:8]) == history["A"]
        assert store.resolve_revision(history["A"][:8].upper()) == history["A"]
        assert store.resolve_revision(history["B"]) == history["B"]

    def test_unknown_id(self, history, store):
        with pytest.raises(RevisionParseError):
            store.resolve_revision("0" * 40)

    def test_hex_named_branch_wins_over_object(self, git, history, store):
        git.set_ref("refs/heads/cafe", history["A"])
        assert store.resolve_revision("cafe") == history["A"]

    def test_annotated_tag_peels(self, git, history, store):
        tag_id = git.annotated_tag("v1", history["A"])

        assert store.resolve_revision("v1") == tag_id
        assert store.resolve_revision("v1^{}") == history["A"]
        assert store.resolve_revision("v1^{commit}") == history["A"]
        assert store.resolve_revision("v1^{tag}") == tag_id
        assert store.peel_to_commit(tag_id) == history["A"]

    def test_peel_to_wrong_type(self, history, store):
        with pytest.raises(RevisionParseError):
            store.resolve_revision("main^{tag}")

    def test_tree_path_is_not_a_commit(self, history, store):
        blob = store.resolve_revision("main:file.txt")
        with pytest.raises(RevisionParseError, match="not a commit"):
            store.peel_to_commit(blob)

    def test_missing_tree_path(self, history, store):
        with pytest.raises(RevisionParseError, match="does not exist"):
            store.resolve_revision("main:missing.txt")

    def test_message_search(self, history, store):
        assert store.resolve_revision(":/second") == history["B"]
        assert store.resolve_revision("work^{/first}") == history["A"]
        assert store.resolve_revision("work^{/!-second}") == history["A"]

    def test_message_search_without_match(self, history, store):
        with pytest.raises(RevisionParseError, match="no commit message matches"):
            store.resolve_revision(":/nothing like this")

    def test_reflog_lookup(self, git, history, store):
        store.repo.refs.set_if_equals(
            b"refs/heads/main",
            history["A"].encode(),
            history["B"].encode(),
            message=b"test: move main",
        )

        assert store.resolve_revision("main@{0}") == history["B"]
        with pytest.raises(RevisionParseError, match="only has 1 entries"):
            store.resolve_revision("main@{1}")

    def test_named_ref_reads_its_own_reflog(self, git, history, store):
        git.write_reflog("HEAD", [(None, history["A"]), (history["A"], history["B"])])
        git.write_reflog("refs/heads/work", [(None, history["B"])])

        assert store.resolve_revision("HEAD@{0}") == history["B"]
        assert store.resolve_revision("HEAD@{1}") == history["A"]
        assert store.resolve_revision("@@{1}") == history["A"]

    def test_bare_reflog_reads_current_branch(self, git, history, store):
        git.write_reflog("HEAD", [(None, history["A"]), (history["A"], history["B"])])
        git.write_reflog("refs/heads/work", [(None, history["B"])])

        assert store.resolve_revision("@{0}") == history["B"]
        with pytest.raises(RevisionParseError, match="log for 'refs/heads/work' only has 1 entries"):
            store.resolve_revision("@{1}")

    def test_upstream(self, git, history, store):
        git.set_ref("refs/remotes/origin/main", history["B"])
        config = git.repo.get_config()
        config.set((b"branch", b"main"), b"remote", b"origin")
        config.set((b"branch", b"main"), b"merge", b"refs/heads/main")
        config.write_to_path()

        assert store.resolve_revision("main@{u}") == history["B"]
        assert store.resolve_revision("main@{push}") == history["B"]

    def test_missing_upstream(self, history, store):
        with pytest.raises(RevisionParseError, match="no upstream configured"):
            store.resolve_revision("main@{upstream}")

    def test_unknown_name(self, history, store):
        with pytest.raises(ReferenceNotFoundError):
            store.resolve_revision("nope")


class TestResolveTarget:
    def test_summary_and_oid(self, history, store):
        target = resolve_target(store, "work~1")
        assert target.oid == history["A"]
        assert target.summary == "first commit"
        assert target.revspec == "work~1"

    def test_ambiguous_name_in_target(self, git, history, store):
        git.set_ref("refs/heads/release", history["A"])
        git.set_ref("refs/tags/release", history["B"])

        with pytest.raises(AmbiguousReferenceError) as exc_info:
            resolve_target(store, "release~0")

        err = exc_info.value
        assert err.exit_code == 3
        assert err.revspec == "release~0"
        assert "refname 'release' in 'release~0' is ambiguous" in str(err)

    def test_empty_message_summary(self, git, history, store):
        empty = git.commit("", parents=(history["B"],), files={"other.txt": "x"})
        assert resolve_target(store, empty).summary == "<empty msg>"

    def test_missing_object(self, store):
        with pytest.raises(ObjectNotFoundError):
            store.commit_summary("f" * 40)
