"""Public data models for the coedit package.

Enums describing session lifecycle and status, the dataclasses that
describe a document's shape, and the result type returned by writes.
Documents themselves are plain ``dict`` objects.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Document = dict[str, Any]
"""A document: field name -> scalar, object-valued field, or collection."""

Item = dict[str, Any]
"""A collection element: attribute name -> scalar, one attribute is its id."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SessionState(str, Enum):
    """Lifecycle states of a :class:`ReconciliationSession`."""

    UNINITIALIZED = "uninitialized"
    """Created but ``open()`` has not been called."""

    LOADING = "loading"
    """The initial document is being obtained."""

    ACTIVE = "active"
    """Edits and pushes are accepted."""

    NOT_FOUND = "not_found"
    """Terminal: the requested document does not exist."""

    FAILED = "failed"
    """Terminal: a malformed snapshot was pushed."""

    TERMINATED = "terminated"
    """Terminal: the session was closed."""


class SessionStatus(str, Enum):
    """Coarse status reported to the presentation layer."""

    LOADING = "loading"
    ACTIVE = "active"
    """Edits are waiting for the next coalesced write."""
    NOT_FOUND = "not_found"
    SAVING = "saving"
    """A write is in flight."""
    IDLE = "idle"
    """Nothing pending."""


class FieldKind(str, Enum):
    """The three shapes a document field can take."""

    SCALAR = "scalar"
    OBJECT = "object"
    COLLECTION = "collection"


# ---------------------------------------------------------------------------
# Document shape
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """Description of one document field.

    Attributes
    ----------
    name:
        Field name as stored.
    kind:
        Scalar, object-valued, or collection.
    id_attr:
        For collections, the attribute holding each item's stable id.
    default:
        Factory for the field's value in a new document.  When ``None``,
        collections default to ``[]`` and other kinds to ``None``.
    """

    name: str
    kind: FieldKind = FieldKind.SCALAR
    id_attr: str = "id"
    default: Callable[[], Any] | None = None

    def empty_value(self) -> Any:
        if self.default is not None:
            return self.default()
        if self.kind == FieldKind.COLLECTION:
            return []
        return None


@dataclass(frozen=True)
class DocumentSchema:
    """The shape shared by every snapshot of one document type."""

    name: str
    fields: tuple[FieldSpec, ...] = ()

    def get_field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def collections(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.kind == FieldKind.COLLECTION)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class WriteResult:
    """Outcome of one coalesced persistence write.

    Attributes
    ----------
    operation:
        ``"create"``, ``"update"``, or ``"skip"`` when Working already
        matched the last known server state.
    document_id:
        Identity of the written document (``None`` only for a skipped
        write of a document that was never created).
    fields:
        Names of the fields that were sent.
    """

    operation: str
    document_id: str | None
    fields: list[str] = field(default_factory=list)
