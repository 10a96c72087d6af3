"""Field-by-field merge of a whole document."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from coedit.models import Document, DocumentSchema, FieldKind, FieldSpec

from .collections import by_attr, merge_collection
from .fields import _MISSING, _same, merge_object


def merge_document(
    schema: DocumentSchema,
    base: Mapping[str, Any] | None,
    local: Mapping[str, Any] | None,
    remote: Mapping[str, Any] | None,
) -> Document:
    """Merge *local* and *remote* against *base*, one schema field at a time.

    Collections go through :func:`merge_collection` keyed by the field's
    ``id_attr``.  An object field the local side left untouched is taken
    from *remote* as a whole; an edited one is merged attribute-wise.
    Scalars, and keys the schema does not describe, follow the
    attribute rule of :func:`merge_object` at document level.

    The result shares no mutable state with the inputs.
    """
    base = base or {}
    local = local or {}
    remote = remote or {}

    result: Document = {}
    for spec in schema.fields:
        value = _merge_field(spec, base, local, remote)
        if value is not _MISSING:
            result[spec.name] = value

    known = {spec.name for spec in schema.fields}
    extra_local = {k: v for k, v in local.items() if k not in known}
    extra_remote = {k: v for k, v in remote.items() if k not in known}
    extra_base = {k: v for k, v in base.items() if k not in known}
    result.update(merge_object(extra_base, extra_local, extra_remote))

    return copy.deepcopy(result)


def _merge_field(
    spec: FieldSpec,
    base: Mapping[str, Any],
    local: Mapping[str, Any],
    remote: Mapping[str, Any],
) -> Any:
    name = spec.name
    base_value = base.get(name, _MISSING)
    local_value = local.get(name, _MISSING)

    if spec.kind == FieldKind.COLLECTION:
        return merge_collection(
            base.get(name), local.get(name), remote.get(name), by_attr(spec.id_attr)
        )

    if spec.kind == FieldKind.OBJECT and not _same(local_value, base_value):
        merged = merge_object(base.get(name), local.get(name), remote.get(name))
        if not merged and local_value in (None, _MISSING):
            return local_value
        return merged

    if not _same(local_value, base_value):
        return local_value
    if name in remote:
        return remote[name]
    return base_value
