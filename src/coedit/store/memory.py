"""Dict-backed document store with in-process push delivery.

Several sessions sharing one :class:`InMemoryDocumentStore` behave like
editors sharing a remote store: every write is pushed to every subscriber
of the document, the writer included.  Deliveries are scheduled with
``loop.call_soon`` so they arrive as separate event-loop callbacks, in
write order.
"""

from __future__ import annotations

import asyncio
import copy
import itertools
from typing import Any

from coedit.errors import CoeditNotFoundError, CoeditWriteError
from coedit.models import Document
from coedit.observability import get_logger

from .base import SnapshotCallback, Subscription

log = get_logger("coedit.store.memory")


class InMemoryDocumentStore:
    """Asynchronous in-process :class:`~coedit.store.base.DocumentStore`.

    Parameters
    ----------
    documents:
        Optional initial content, ``{document_id: document}``.
    id_prefix:
        Prefix of generated document ids.
    """

    def __init__(
        self,
        documents: dict[str, Document] | None = None,
        id_prefix: str = "doc",
    ) -> None:
        self._documents: dict[str, Document] = copy.deepcopy(documents or {})
        self._subscribers: dict[str, list[tuple[Subscription, SnapshotCallback]]] = {}
        self._ids = itertools.count(1)
        self._id_prefix = id_prefix
        self.writes: list[tuple[str, str, Document]] = []
        """Log of ``(operation, document_id, payload)`` for every write."""

    # ------------------------------------------------------------------
    # DocumentStore
    # ------------------------------------------------------------------

    async def load_document(self, document_id: str) -> Document:
        try:
            return copy.deepcopy(self._documents[document_id])
        except KeyError:
            raise CoeditNotFoundError(
                f"Document '{document_id}' not found",
                context={"document_id": document_id},
            ) from None

    async def create_document(self, document: Document) -> str:
        document_id = f"{self._id_prefix}-{next(self._ids)}"
        while document_id in self._documents:
            document_id = f"{self._id_prefix}-{next(self._ids)}"
        self._documents[document_id] = copy.deepcopy(document)
        self.writes.append(("create", document_id, copy.deepcopy(document)))
        self._notify(document_id)
        return document_id

    async def update_document(self, document_id: str, partial: Document) -> None:
        if document_id not in self._documents:
            raise CoeditWriteError(
                f"Cannot update missing document '{document_id}'",
                context={"document_id": document_id, "operation": "update"},
            )
        self._documents[document_id].update(copy.deepcopy(partial))
        self.writes.append(("update", document_id, copy.deepcopy(partial)))
        self._notify(document_id)

    def subscribe(self, document_id: str, on_snapshot: SnapshotCallback) -> Subscription:
        entries = self._subscribers.setdefault(document_id, [])

        def _remove() -> None:
            entries[:] = [e for e in entries if e[0] is not subscription]

        subscription = Subscription(document_id, on_cancel=_remove)
        entries.append((subscription, on_snapshot))
        if document_id in self._documents:
            self._deliver(subscription, on_snapshot, self._documents[document_id])
        return subscription

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def get(self, document_id: str) -> Document | None:
        """Return a copy of the stored document without going through a session."""
        doc = self._documents.get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    def subscriber_count(self, document_id: str) -> int:
        return len(self._subscribers.get(document_id, []))

    def _notify(self, document_id: str) -> None:
        doc = self._documents[document_id]
        for subscription, callback in list(self._subscribers.get(document_id, [])):
            self._deliver(subscription, callback, doc)

    def _deliver(
        self, subscription: Subscription, callback: SnapshotCallback, doc: Document,
    ) -> None:
        snapshot = copy.deepcopy(doc)

        def _run() -> None:
            # Unsubscribed between scheduling and delivery.
            if subscription.active:
                callback(snapshot)

        asyncio.get_running_loop().call_soon(_run)
        log.debug(
            "Snapshot scheduled",
            extra={"extra_fields": {"op": "push", "document_id": subscription.document_id}},
        )

    def __repr__(self) -> str:
        return f"InMemoryDocumentStore(documents={len(self._documents)})"

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: Any) -> bool:
        return document_id in self._documents
