"""Three-way merge of one object-valued field.

The rule is applied attribute by attribute over the union of the keys of
*base*, *local* and *remote*:

* an attribute the local side changed since *base* keeps the local value,
  even when the change is a removal;
* otherwise the remote value is taken if the remote side defines one
  (``None`` counts as defined);
* otherwise the base value is kept.

Comparison is strict equality on each attribute value; nested values are
compared as a whole, never diffed.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_MISSING: Any = object()


def _keys(*mappings: Mapping[str, Any]) -> list[str]:
    """Union of keys, ordered by first appearance (local, remote, base)."""
    seen: dict[str, None] = {}
    for mapping in mappings:
        for key in mapping:
            seen.setdefault(key, None)
    return list(seen)


def merge_object(
    base: Mapping[str, Any] | None,
    local: Mapping[str, Any] | None,
    remote: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Merge one object-valued field across base, local, and remote versions.

    ``None`` for any argument is treated as an empty mapping.  The result
    is a new ``dict``; the inputs are never mutated.

    Examples
    --------
    >>> merge_object({"name": "X", "amount": 5},
    ...              {"name": "X", "amount": 7},
    ...              {"name": "Y", "amount": 5})
    {'name': 'Y', 'amount': 7}
    """
    base = base or {}
    local = local or {}
    remote = remote or {}

    result: dict[str, Any] = {}
    for attr in _keys(local, remote, base):
        local_value = local.get(attr, _MISSING)
        base_value = base.get(attr, _MISSING)

        if not _same(local_value, base_value):
            value = local_value
        elif attr in remote:
            value = remote[attr]
        else:
            value = base_value

        if value is not _MISSING:
            result[attr] = value
    return result


def is_modified(base: Mapping[str, Any] | None, local: Mapping[str, Any] | None) -> bool:
    """Return ``True`` if any attribute of *local* differs from *base*."""
    base = base or {}
    local = local or {}
    return any(
        not _same(local.get(attr, _MISSING), base.get(attr, _MISSING))
        for attr in _keys(local, base)
    )


def _same(a: Any, b: Any) -> bool:
    if a is _MISSING or b is _MISSING:
        return a is b
    return bool(a == b)
