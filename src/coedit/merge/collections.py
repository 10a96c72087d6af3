"""Three-way merge of a keyed collection.

Collections are treated as sets of items keyed by a stable id; list order
carries no meaning for the merge.  Given the *base* the session last
reconciled against, the *local* working copy and a freshly pushed
*remote* copy:

1. An item present in *base* but missing from *remote* was removed on the
   server.
2. A local item whose attributes differ from its *base* counterpart was
   edited locally.
3. Local items survive unless they were removed remotely **and** not
   edited locally.  A local edit outlives a remote deletion.
4. Each survivor is merged attribute-wise with
   :func:`~coedit.merge.fields.merge_object`.
5. Remote items unknown to both *base* and *local* are new server-side
   additions and are appended.  An item that is in *base* but was deleted
   locally is not brought back.

Survivors keep their local order; new remote items follow in remote
order.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Sequence
from typing import Any

from .fields import is_modified, merge_object

IdOf = Callable[[dict[str, Any]], Hashable]


def by_attr(name: str) -> IdOf:
    """Return an ``id_of`` callable reading the attribute *name*."""

    def id_of(item: dict[str, Any]) -> Hashable:
        return item.get(name)

    return id_of


def _index(items: Sequence[dict[str, Any]], id_of: IdOf) -> dict[Hashable, dict[str, Any]]:
    """Map id -> item; the first occurrence of a duplicated id wins."""
    index: dict[Hashable, dict[str, Any]] = {}
    for item in items:
        index.setdefault(id_of(item), item)
    return index


def merge_collection(
    base: Sequence[dict[str, Any]] | None,
    local: Sequence[dict[str, Any]] | None,
    remote: Sequence[dict[str, Any]] | None,
    id_of: IdOf,
) -> list[dict[str, Any]]:
    """Merge one keyed collection across base, local, and remote versions.

    Parameters
    ----------
    base:
        Items as of the last reconciliation.
    local:
        Items in the working copy, possibly edited.
    remote:
        Items in the snapshot just pushed by the store.
    id_of:
        Returns an item's stable identifier.  Ids are expected to be
        unique within each input.

    Returns
    -------
    list[dict]
        The merged items.  ``None`` inputs are treated as empty.
    """
    base = base or []
    local = local or []
    remote = remote or []

    base_by_id = _index(base, id_of)
    remote_by_id = _index(remote, id_of)
    local_ids = {id_of(item) for item in local}

    remotely_removed = base_by_id.keys() - remote_by_id.keys()
    locally_edited = {
        id_of(item)
        for item in local
        if id_of(item) in base_by_id and is_modified(base_by_id[id_of(item)], item)
    }

    result: list[dict[str, Any]] = []
    for item in local:
        item_id = id_of(item)
        if item_id in remotely_removed and item_id not in locally_edited:
            continue
        result.append(
            merge_object(base_by_id.get(item_id), item, remote_by_id.get(item_id))
        )

    for item in remote:
        item_id = id_of(item)
        if item_id in local_ids or item_id in base_by_id:
            continue
        result.append(dict(item))
        # Guard against duplicated ids within remote.
        local_ids.add(item_id)

    return result
