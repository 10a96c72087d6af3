"""REST document store with a polling push channel.

Wire contract (paths relative to ``CoeditConfig.base_url``):

* ``GET    /{collection}/{id}`` -- the document as a JSON object.
* ``POST   /{collection}``      -- body is the new document; responds
  ``{"id": "<identity>"}``.
* ``PATCH  /{collection}/{id}`` -- body holds the fields to overwrite.

Pushes are emulated by polling: each subscription fetches the document
every ``poll_interval_seconds`` and delivers it when its content
fingerprint changed.  The first successful poll always delivers.  A failed
poll, or a subscriber that raises, is logged and the next poll goes ahead.
"""

from __future__ import annotations

import asyncio
from typing import Any

from coedit.config import CoeditConfig
from coedit.errors import CoeditError, CoeditNotFoundError, CoeditWriteError
from coedit.models import Document
from coedit.observability import get_logger
from coedit.utils.hashing import hash_dict

from .base import SnapshotCallback, Subscription
from .transport import AsyncStoreTransport

log = get_logger("coedit.store.http")


class HttpDocumentStore:
    """Asynchronous :class:`~coedit.store.base.DocumentStore` over HTTP.

    Parameters
    ----------
    config:
        Store URL, credentials, polling interval, retry and rate settings.
    transport:
        Optional pre-built transport; one is created from *config* otherwise.
    """

    def __init__(
        self,
        config: CoeditConfig | None = None,
        transport: AsyncStoreTransport | None = None,
    ) -> None:
        self._config = config or CoeditConfig()
        self._transport = transport or AsyncStoreTransport(self._config)
        self._polls: set[asyncio.Task[None]] = set()

    def _path(self, document_id: str | None = None) -> str:
        if document_id is None:
            return f"/{self._config.collection}"
        return f"/{self._config.collection}/{document_id}"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_document(self, document_id: str) -> Document:
        try:
            return await self._transport.request("GET", self._path(document_id))
        except CoeditNotFoundError as exc:
            raise CoeditNotFoundError(
                f"Document '{document_id}' not found",
                context={"document_id": document_id},
                cause=exc,
            ) from exc

    # ------------------------------------------------------------------
    # Writes (single attempt)
    # ------------------------------------------------------------------

    async def create_document(self, document: Document) -> str:
        try:
            body = await self._transport.request("POST", self._path(), json=document)
        except CoeditError as exc:
            raise CoeditWriteError(
                f"Create failed: {exc.message}",
                context={"document_id": None, "operation": "create"},
                cause=exc,
            ) from exc

        document_id = body.get("id")
        if not document_id:
            raise CoeditWriteError(
                "Create response carried no document id",
                context={"document_id": None, "operation": "create", "body": body},
            )
        return str(document_id)

    async def update_document(self, document_id: str, partial: Document) -> None:
        try:
            await self._transport.request("PATCH", self._path(document_id), json=partial)
        except CoeditError as exc:
            raise CoeditWriteError(
                f"Update of '{document_id}' failed: {exc.message}",
                context={"document_id": document_id, "operation": "update"},
                cause=exc,
            ) from exc

    # ------------------------------------------------------------------
    # Push channel
    # ------------------------------------------------------------------

    def subscribe(self, document_id: str, on_snapshot: SnapshotCallback) -> Subscription:
        task: asyncio.Task[None] | None = None

        def _cancel() -> None:
            if task is not None:
                task.cancel()

        subscription = Subscription(document_id, on_cancel=_cancel)
        task = asyncio.get_running_loop().create_task(self._poll(subscription, on_snapshot))
        self._polls.add(task)
        task.add_done_callback(self._polls.discard)
        return subscription

    async def _poll(self, subscription: Subscription, on_snapshot: SnapshotCallback) -> None:
        document_id = subscription.document_id
        last_fingerprint: str | None = None

        while subscription.active:
            try:
                doc = await self.load_document(document_id)
                fingerprint = hash_dict(doc)
                if fingerprint != last_fingerprint and subscription.active:
                    last_fingerprint = fingerprint
                    on_snapshot(doc)
            except CoeditError as exc:
                log.warning(
                    "Poll failed",
                    extra={
                        "extra_fields": {
                            "op": "poll",
                            "document_id": document_id,
                            "code": exc.code,
                            "error": exc.message,
                        }
                    },
                )
            except Exception:
                log.error(
                    "Poll error",
                    exc_info=True,
                    extra={"extra_fields": {"op": "poll", "document_id": document_id}},
                )
            await asyncio.sleep(self._config.poll_interval_seconds)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Stop every polling task and close the transport."""
        for task in list(self._polls):
            task.cancel()
        if self._polls:
            await asyncio.gather(*self._polls, return_exceptions=True)
        await self._transport.close()

    async def __aenter__(self) -> HttpDocumentStore:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
