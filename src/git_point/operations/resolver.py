"""Short ref name resolution for git-point.

git resolves a short name like ``release`` by trying namespaces in a fixed
order and silently taking the first hit, even when ``refs/heads/release``
and ``refs/tags/release`` both exist. find_ambiguous_references reports
that case instead of picking one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

from git_point.models.refs import Ambiguous, Reference, Unambiguous

if TYPE_CHECKING:
    from git_point.storage.repositories import ReferenceStore

logger = logging.getLogger(__name__)


def find_ambiguous_references(
    store: ReferenceStore,
    name: str,
) -> Union[Unambiguous, Ambiguous]:
    """Resolve ``name`` to a single ref, or report every ref it could mean.

    The ref a naive lookup picks is always the first candidate. Other refs
    count as candidates when their shortened form equals ``name`` exactly.
    Refs are compared by full name, never by value, since two refs may
    point at the same commit.

    Args:
        store: The reference store to search.
        name: A short or fully qualified ref name.

    Returns:
        Unambiguous with the looked-up ref, or Ambiguous with every
        fully qualified candidate.

    Raises:
        ReferenceNotFoundError: If ``name`` matches no ref at all.
        StoreError: If the store cannot be read.
    """
    reference = store.find_reference(name)

    # iter_references() already skips entries it cannot load
    ambiguous_refs: list[Reference] = [
        r for r in store.iter_references()
        if r.name != reference.name and r.short_name == name
    ]

    if not ambiguous_refs:
        return Unambiguous(reference=reference)

    candidates = [reference.name]
    for r in ambiguous_refs:
        if r.name not in candidates:
            candidates.append(r.name)

    logger.debug("ref name %r is ambiguous: %s", name, candidates)
    return Ambiguous(requested=name, candidates=tuple(candidates))
