"""coedit: three-way reconciliation for concurrently edited documents.

Public re-exports
-----------------

* **Sessions:** :class:`ReconciliationSession`
* **Merge rules:** :func:`merge_object`, :func:`merge_collection`,
  :func:`merge_document`
* **Stores:** :class:`InMemoryDocumentStore`, :class:`HttpDocumentStore`
* **Configuration:** :class:`CoeditConfig`
* **Schemas:** :data:`BULLETIN_SCHEMA`, :data:`PROPERTY_SCHEMA`,
  :class:`DocumentSchema`, :class:`FieldSpec`
* **Errors:** Every :class:`CoeditError` subclass and :class:`ErrorCode`

Usage::

    from coedit import BULLETIN_SCHEMA, InMemoryDocumentStore, ReconciliationSession

    store = InMemoryDocumentStore()
    async with ReconciliationSession(store, BULLETIN_SCHEMA) as session:
        session.set_item("new", {"id": "veh-1", "name": "Itali RSX"})
        await session.flush()
"""

from __future__ import annotations

# ── Configuration ───────────────────────────────────────────────────────
from coedit.config import CoeditConfig

# ── Errors ──────────────────────────────────────────────────────────────
from coedit.errors import (
    CoeditAuthError,
    CoeditError,
    CoeditMalformedSnapshotError,
    CoeditNetworkError,
    CoeditNotFoundError,
    CoeditResponseError,
    CoeditRetryExhaustedError,
    CoeditSessionStateError,
    CoeditValidationError,
    CoeditWriteError,
    ErrorCode,
)

# ── Merge rules ─────────────────────────────────────────────────────────
from coedit.merge import merge_collection, merge_document, merge_object

# ── Models ──────────────────────────────────────────────────────────────
from coedit.models import (
    DocumentSchema,
    FieldKind,
    FieldSpec,
    SessionState,
    SessionStatus,
    WriteResult,
)
from coedit.schema import BULLETIN_SCHEMA, PROPERTY_SCHEMA, empty_document, validate_document

# ── Sessions ────────────────────────────────────────────────────────────
from coedit.session import ReconciliationSession

# ── Stores ──────────────────────────────────────────────────────────────
from coedit.store import DocumentStore, HttpDocumentStore, InMemoryDocumentStore, Subscription

__all__ = [
    # Sessions
    "ReconciliationSession",
    # Merge rules
    "merge_object",
    "merge_collection",
    "merge_document",
    # Stores
    "DocumentStore",
    "Subscription",
    "InMemoryDocumentStore",
    "HttpDocumentStore",
    # Configuration
    "CoeditConfig",
    # Schemas
    "BULLETIN_SCHEMA",
    "PROPERTY_SCHEMA",
    "DocumentSchema",
    "FieldSpec",
    "FieldKind",
    "empty_document",
    "validate_document",
    # Models
    "SessionState",
    "SessionStatus",
    "WriteResult",
    # Errors
    "CoeditError",
    "ErrorCode",
    "CoeditNotFoundError",
    "CoeditWriteError",
    "CoeditMalformedSnapshotError",
    "CoeditSessionStateError",
    "CoeditValidationError",
    "CoeditAuthError",
    "CoeditNetworkError",
    "CoeditRetryExhaustedError",
    "CoeditResponseError",
]
