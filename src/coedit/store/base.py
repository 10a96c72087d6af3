"""The contract between a reconciliation session and its document store.

A store persists documents and pushes their full content to subscribers
whenever they change, including the echo of a subscriber's own write.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from coedit.models import Document

SnapshotCallback = Callable[[Document], None]


class Subscription:
    """Cancellable handle returned by :meth:`DocumentStore.subscribe`.

    Parameters
    ----------
    document_id:
        The document being watched.
    on_cancel:
        Called once, on the first :meth:`unsubscribe`.
    """

    __slots__ = ("_on_cancel", "active", "document_id")

    def __init__(self, document_id: str, on_cancel: Callable[[], Any] | None = None) -> None:
        self.document_id = document_id
        self.active = True
        self._on_cancel = on_cancel

    def unsubscribe(self) -> None:
        """Stop deliveries.  Safe to call more than once."""
        if not self.active:
            return
        self.active = False
        if self._on_cancel is not None:
            self._on_cancel()

    def __repr__(self) -> str:
        return f"Subscription(document_id={self.document_id!r}, active={self.active})"


@runtime_checkable
class DocumentStore(Protocol):
    """Persistence sink and push channel for documents."""

    async def load_document(self, document_id: str) -> Document:
        """Return the stored document.

        Raises :class:`~coedit.errors.CoeditNotFoundError` if it does not
        exist.
        """
        ...

    async def create_document(self, document: Document) -> str:
        """Store a new document and return its identity.

        Raises :class:`~coedit.errors.CoeditWriteError` on failure.
        """
        ...

    async def update_document(self, document_id: str, partial: Document) -> None:
        """Overwrite the fields present in *partial*.

        Raises :class:`~coedit.errors.CoeditWriteError` on failure.
        """
        ...

    def subscribe(self, document_id: str, on_snapshot: SnapshotCallback) -> Subscription:
        """Deliver the full document to *on_snapshot* on every change.

        The current state is delivered once right after subscribing.
        """
        ...
