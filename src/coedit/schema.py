"""Document schemas and shape checks.

A :class:`DocumentSchema` is the configuration contract between the
reconciliation core and its collaborators: which fields exist, which of
them are collections, and which attribute identifies a collection item.

:data:`BULLETIN_SCHEMA` describes the weekly update bulletin: a date, a
handful of single featured entries, and several lists of line items.
:data:`PROPERTY_SCHEMA` describes a purchasable property listing.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from coedit.errors import CoeditMalformedSnapshotError
from coedit.models import Document, DocumentSchema, FieldKind, FieldSpec


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


BULLETIN_SCHEMA = DocumentSchema(
    name="bulletin",
    fields=(
        FieldSpec("date", FieldKind.SCALAR, default=_utc_now_iso),
        FieldSpec("podium", FieldKind.OBJECT),
        FieldSpec("time_trial", FieldKind.OBJECT),
        FieldSpec("rc_time_trial", FieldKind.OBJECT),
        FieldSpec("premium_race", FieldKind.OBJECT),
        FieldSpec("new", FieldKind.COLLECTION),
        FieldSpec("sale", FieldKind.COLLECTION),
        FieldSpec("twitch_prime", FieldKind.COLLECTION),
        FieldSpec("bonus_activities", FieldKind.COLLECTION),
        FieldSpec("targeted_sale", FieldKind.COLLECTION),
    ),
)

# Storefronts a property can be bought from; a new listing starts at the first.
PROPERTY_SHOPS: tuple[str, ...] = (
    "Dynasty 8 Real Estate",
    "Maze Bank Foreclosures",
    "SecuroServ",
    "The Open Road",
    "Dynasty 8 Executive",
    "Warstock Cache & Carry",
    "DockTease",
    "The Diamond Casino & Resort",
    "ArenaWar.tv",
)

PROPERTY_SCHEMA = DocumentSchema(
    name="property",
    fields=(
        FieldSpec("name", FieldKind.SCALAR, default=str),
        FieldSpec("img", FieldKind.SCALAR, default=str),
        FieldSpec("shop", FieldKind.SCALAR, default=lambda: PROPERTY_SHOPS[0]),
        FieldSpec("url", FieldKind.SCALAR, default=str),
        FieldSpec("locations", FieldKind.COLLECTION),
    ),
)


def empty_document(schema: DocumentSchema) -> Document:
    """Return a new document with every field at its default value."""
    return {spec.name: spec.empty_value() for spec in schema.fields}


def validate_document(schema: DocumentSchema, doc: Any) -> Document:
    """Check that *doc* fits *schema* and return it.

    Missing fields are allowed; they merge as empty values.  Keys the
    schema does not name are passed through untouched.

    Raises
    ------
    CoeditMalformedSnapshotError
        If *doc* is not a mapping, a collection is not a list of mappings,
        an item lacks its id attribute, or an object field holds something
        other than a mapping or ``None``.
    """
    if not isinstance(doc, Mapping):
        raise CoeditMalformedSnapshotError(
            f"Snapshot for '{schema.name}' is {type(doc).__name__}, expected a mapping",
            context={"schema": schema.name, "reason": "not_a_mapping"},
        )

    for spec in schema.fields:
        if spec.name not in doc:
            continue
        value = doc[spec.name]

        if spec.kind == FieldKind.COLLECTION:
            _check_collection(schema, spec, value)
        elif spec.kind == FieldKind.OBJECT:
            if value is not None and not isinstance(value, Mapping):
                raise CoeditMalformedSnapshotError(
                    f"Field '{spec.name}' must be a mapping or null",
                    context={"schema": schema.name, "field": spec.name, "reason": "not_an_object"},
                )

    return dict(doc)


def _check_collection(schema: DocumentSchema, spec: FieldSpec, value: Any) -> None:
    if value is None:
        return
    if not isinstance(value, list):
        raise CoeditMalformedSnapshotError(
            f"Collection '{spec.name}' must be a list",
            context={"schema": schema.name, "field": spec.name, "reason": "not_a_list"},
        )
    for index, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise CoeditMalformedSnapshotError(
                f"Item {index} of '{spec.name}' is not a mapping",
                context={"schema": schema.name, "field": spec.name, "reason": "item_not_a_mapping"},
            )
        if spec.id_attr not in item:
            raise CoeditMalformedSnapshotError(
                f"Item {index} of '{spec.name}' has no '{spec.id_attr}'",
                context={"schema": schema.name, "field": spec.name, "reason": "missing_id"},
            )
