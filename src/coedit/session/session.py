"""Reconciliation session: one editor's view of one shared document.

A session owns three snapshots of the document:

* **Base** -- the server state the last merge was computed against;
* **Working** -- what the editor sees, including unsaved edits;
* **Remote** -- a snapshot just pushed by the store, folded into Working
  and then kept as the next Base.

Edits change Working and schedule a coalesced write.  Pushes are merged
into Working with :func:`~coedit.merge.merge_document`, except the first
push after each subscription.  That one is dropped: Base stays the loaded
(or just created) state, so if the store already moved on, the next push
brings those changes in as remote edits.

Everything runs on one event loop.  Edits are plain methods, pushes are
loop callbacks, writes are tasks; a push that arrives while a merge is
running is queued and merged right after it.

Usage::

    store = InMemoryDocumentStore()
    async with ReconciliationSession(store, BULLETIN_SCHEMA) as session:
        session.set_field("date", "2026-10-15T00:00:00+00:00")
        session.set_item("sale", {"id": "v1", "name": "Turismo", "amount": 30})
        await session.flush()
"""

from __future__ import annotations

import copy
import time
from collections import deque
from collections.abc import Callable, Hashable, Mapping
from typing import Any

from coedit.config import CoeditConfig
from coedit.errors import (
    CoeditMalformedSnapshotError,
    CoeditNotFoundError,
    CoeditSessionStateError,
    CoeditWriteError,
)
from coedit.merge import merge_document
from coedit.models import (
    Document,
    DocumentSchema,
    FieldKind,
    FieldSpec,
    Item,
    SessionState,
    SessionStatus,
    WriteResult,
)
from coedit.observability import NoopMetricsHook, get_logger
from coedit.schema import BULLETIN_SCHEMA, empty_document, validate_document
from coedit.store.base import DocumentStore, Subscription

from .writer import CoalescingWriter

log = get_logger("coedit.session")

ChangeListener = Callable[[Document], None]


class ReconciliationSession:
    """Stateful orchestrator for one open document-edit session.

    Parameters
    ----------
    store:
        Persistence sink and push channel.
    schema:
        Shape of the document being edited.
    config:
        Write coalescing and observability settings.
    document_id:
        Identity of the document to edit, or ``None`` for a new document.
    preloaded:
        Documents the caller already holds, ``{document_id: document}``.
        A hit skips the initial load from *store*.
    """

    def __init__(
        self,
        store: DocumentStore,
        schema: DocumentSchema = BULLETIN_SCHEMA,
        config: CoeditConfig | None = None,
        *,
        document_id: str | None = None,
        preloaded: Mapping[str, Document] | None = None,
    ) -> None:
        self._store = store
        self._schema = schema
        self._config = config or CoeditConfig()
        self._metrics = (
            self._config.metrics if self._config.metrics is not None else NoopMetricsHook()
        )
        self._preloaded = preloaded or {}

        self.document_id: str | None = document_id
        self.last_error: CoeditWriteError | None = None
        """Most recent write failure; cleared by the next successful write."""
        self.error: Exception | None = None
        """The fatal error that moved the session to ``FAILED``."""

        self._state = SessionState.UNINITIALIZED
        self._base: Document = {}
        self._working: Document = {}
        self._server: Document | None = None
        self._subscription: Subscription | None = None
        self._awaiting_first_push = False
        self._merging = False
        self._closing = False
        self._inbox: deque[Any] = deque()
        self._listeners: list[ChangeListener] = []
        self._writer = CoalescingWriter(
            self._persist,
            interval=self._config.write_interval_seconds,
            strategy=self._config.write_strategy,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    async def open(self) -> None:
        """Obtain the initial document and start listening for pushes.

        Ends in ``ACTIVE``, or in ``NOT_FOUND`` if *document_id* names a
        document the store does not have.

        Raises
        ------
        CoeditSessionStateError
            If the session was already opened.
        CoeditMalformedSnapshotError
            If the loaded document does not fit the schema (the session
            ends in ``FAILED``).
        """
        if self._state != SessionState.UNINITIALIZED:
            raise CoeditSessionStateError(
                f"Cannot open a session in state '{self._state.value}'",
                context={"state": self._state.value, "operation": "open"},
            )
        self._state = SessionState.LOADING

        if self.document_id is None:
            doc = empty_document(self._schema)
        elif self.document_id in self._preloaded:
            doc = copy.deepcopy(dict(self._preloaded[self.document_id]))
        else:
            try:
                doc = await self._store.load_document(self.document_id)
            except CoeditNotFoundError:
                if self._state == SessionState.LOADING:
                    self._state = SessionState.NOT_FOUND
                    log.info(
                        "Document not found",
                        extra={"extra_fields": {"op": "open", "document_id": self.document_id}},
                    )
                return
            if self._state != SessionState.LOADING:
                # Closed while loading.
                return

        try:
            doc = validate_document(self._schema, doc)
        except CoeditMalformedSnapshotError as exc:
            self._fail(exc)
            raise

        self._base = copy.deepcopy(doc)
        self._working = copy.deepcopy(doc)
        if self.document_id is not None:
            self._server = copy.deepcopy(doc)
            self._subscribe()

        self._state = SessionState.ACTIVE
        log.info(
            "Session active",
            extra={
                "extra_fields": {
                    "op": "open",
                    "document_id": self.document_id,
                    "schema": self._schema.name,
                    "new": self.document_id is None,
                }
            },
        )

    async def close(self) -> None:
        """Terminate the session.

        Unsubscribes from the push channel first, then (with
        ``flush_on_close``) writes pending edits.  A write still in flight
        completes, but its result is ignored.
        """
        if self._state == SessionState.TERMINATED:
            return
        self._closing = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if (
            self._state == SessionState.ACTIVE
            and self._config.flush_on_close
            and self._writer.pending
        ):
            await self._writer.flush()

        self._writer.cancel()
        self._inbox.clear()
        self._state = SessionState.TERMINATED
        log.info(
            "Session terminated",
            extra={"extra_fields": {"op": "close", "document_id": self.document_id}},
        )

    async def __aenter__(self) -> ReconciliationSession:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Presentation surface
    # ------------------------------------------------------------------

    def get_working(self) -> Document:
        """Return a copy of the working document."""
        return copy.deepcopy(self._working)

    @property
    def base(self) -> Document:
        """A copy of the snapshot the next merge is computed against."""
        return copy.deepcopy(self._base)

    def status(self) -> SessionStatus:
        if self._state in (SessionState.UNINITIALIZED, SessionState.LOADING):
            return SessionStatus.LOADING
        if self._state == SessionState.NOT_FOUND:
            return SessionStatus.NOT_FOUND
        if self._state == SessionState.ACTIVE:
            if self._writer.in_flight:
                return SessionStatus.SAVING
            if self._writer.pending:
                return SessionStatus.ACTIVE
        return SessionStatus.IDLE

    def add_listener(self, callback: ChangeListener) -> Callable[[], None]:
        """Call *callback* with a copy of Working after each merge that
        changed it.  Returns a function removing the listener.
        """
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def set_field(self, name: str, value: Any) -> None:
        """Replace one field of the working document."""
        self._require_active("set_field")
        self._working[name] = copy.deepcopy(value)
        self._writer.schedule()

    def set_item(self, collection: str, item: Item) -> None:
        """Replace the item with the same id, or append it if new."""
        self._require_active("set_item")
        spec = self._collection_spec(collection)
        if spec.id_attr not in item:
            raise ValueError(f"Item for '{collection}' has no '{spec.id_attr}' attribute")

        item_id = item[spec.id_attr]
        items = list(self._working.get(collection) or [])
        new_item = copy.deepcopy(dict(item))
        for index, existing in enumerate(items):
            if existing.get(spec.id_attr) == item_id:
                items[index] = new_item
                break
        else:
            items.append(new_item)

        self._working[collection] = items
        self._writer.schedule()

    def delete_item(self, collection: str, item_id: Hashable) -> None:
        """Remove the item with *item_id* from *collection*."""
        self._require_active("delete_item")
        spec = self._collection_spec(collection)
        items = self._working.get(collection) or []
        kept = [i for i in items if i.get(spec.id_attr) != item_id]
        if len(kept) == len(items):
            return
        self._working[collection] = kept
        self._writer.schedule()

    async def flush(self) -> WriteResult | None:
        """Run the pending coalesced write now.

        Returns the write's result, or ``None`` when nothing was pending or
        the write failed (see :attr:`last_error`).
        """
        if self._state != SessionState.ACTIVE:
            return None
        result: WriteResult | None = await self._writer.flush()
        return result

    # ------------------------------------------------------------------
    # Push handling
    # ------------------------------------------------------------------

    def _subscribe(self) -> None:
        assert self.document_id is not None
        self._awaiting_first_push = True
        self._subscription = self._store.subscribe(self.document_id, self._on_snapshot)

    def _on_snapshot(self, doc: Document) -> None:
        if self._state != SessionState.ACTIVE or self._closing:
            return
        self._inbox.append(doc)
        if self._merging:
            return

        self._merging = True
        try:
            while self._inbox and self._state == SessionState.ACTIVE:
                self._apply_snapshot(self._inbox.popleft())
        finally:
            self._merging = False

    def _apply_snapshot(self, doc: Any) -> None:
        self._metrics.increment("coedit.snapshots_total", tags={"schema": self._schema.name})
        try:
            remote = copy.deepcopy(validate_document(self._schema, doc))
        except CoeditMalformedSnapshotError as exc:
            self._fail(exc)
            return

        if self._awaiting_first_push:
            # Base and server state stay as loaded or created; the next
            # push merges against them.
            self._awaiting_first_push = False
            self._metrics.increment(
                "coedit.snapshots_suppressed_total", tags={"schema": self._schema.name},
            )
            log.debug(
                "First snapshot suppressed",
                extra={"extra_fields": {"op": "push", "document_id": self.document_id}},
            )
            return

        t0 = time.monotonic()
        merged = merge_document(self._schema, self._base, self._working, remote)
        elapsed_ms = (time.monotonic() - t0) * 1000

        if self._config.debug_dump_merge:
            _dump_merge(self.document_id, self._base, self._working, remote, merged)

        changed = merged != self._working
        self._server = copy.deepcopy(remote)
        self._base = remote
        self._working = merged

        self._metrics.increment(
            "coedit.merges_total",
            tags={"schema": self._schema.name, "changed": str(changed).lower()},
        )
        self._metrics.timing(
            "coedit.merge_duration_ms", elapsed_ms, tags={"schema": self._schema.name},
        )
        log.debug(
            "Snapshot merged",
            extra={
                "extra_fields": {
                    "op": "merge",
                    "document_id": self.document_id,
                    "changed": changed,
                    "duration_ms": round(elapsed_ms, 3),
                }
            },
        )

        if changed:
            for listener in list(self._listeners):
                listener(self.get_working())

    def _fail(self, exc: Exception) -> None:
        self._state = SessionState.FAILED
        self.error = exc
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._writer.cancel()
        self._inbox.clear()
        log.error(
            "Session failed",
            extra={
                "extra_fields": {
                    "op": "push",
                    "document_id": self.document_id,
                    "error": str(exc),
                }
            },
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _persist(self) -> WriteResult | None:
        snapshot = copy.deepcopy(self._working)

        if self.document_id is None:
            try:
                document_id = await self._store.create_document(snapshot)
            except CoeditWriteError as exc:
                self._record_write_failure(exc, "create")
                return None
            result = WriteResult("create", document_id, list(snapshot))
            if self._state != SessionState.ACTIVE:
                return result
            self.document_id = document_id
            self._base = copy.deepcopy(snapshot)
            self._server = snapshot
            self._record_write_success(result)
            if not self._closing:
                self._subscribe()
            return result

        partial = {
            name: value
            for name, value in snapshot.items()
            if self._server is None or name not in self._server or self._server[name] != value
        }
        if not partial:
            return WriteResult("skip", self.document_id)

        try:
            await self._store.update_document(self.document_id, partial)
        except CoeditWriteError as exc:
            self._record_write_failure(exc, "update")
            return None
        result = WriteResult("update", self.document_id, list(partial))
        if self._state != SessionState.ACTIVE:
            return result
        if self._server is not None:
            self._server.update(copy.deepcopy(partial))
        self._record_write_success(result)
        return result

    def _record_write_success(self, result: WriteResult) -> None:
        self.last_error = None
        self._metrics.increment(
            "coedit.writes_total",
            tags={"schema": self._schema.name, "operation": result.operation},
        )
        log.info(
            "Write complete",
            extra={
                "extra_fields": {
                    "op": result.operation,
                    "document_id": result.document_id,
                    "fields": result.fields,
                }
            },
        )

    def _record_write_failure(self, exc: CoeditWriteError, operation: str) -> None:
        if self._state != SessionState.ACTIVE:
            return
        self.last_error = exc
        self._metrics.increment(
            "coedit.write_failures_total",
            tags={"schema": self._schema.name, "operation": operation},
        )
        log.warning(
            "Write failed",
            extra={
                "extra_fields": {
                    "op": operation,
                    "document_id": self.document_id,
                    "error": exc.message,
                }
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_active(self, operation: str) -> None:
        if self._state != SessionState.ACTIVE:
            raise CoeditSessionStateError(
                f"Cannot {operation} while session is '{self._state.value}'",
                context={"state": self._state.value, "operation": operation},
            )

    def _collection_spec(self, collection: str) -> FieldSpec:
        spec = self._schema.get_field(collection)
        if spec is None or spec.kind != FieldKind.COLLECTION:
            raise ValueError(
                f"'{collection}' is not a collection of schema '{self._schema.name}'"
            )
        return spec

    def __repr__(self) -> str:
        return (
            f"ReconciliationSession(schema={self._schema.name!r}, "
            f"document_id={self.document_id!r}, state={self._state.value!r})"
        )


def _dump_merge(
    document_id: str | None,
    base: Document,
    local: Document,
    remote: Document,
    merged: Document,
) -> None:
    """Log one merge's inputs and output as a debug record."""
    log.debug(
        "Merge dump",
        extra={
            "extra_fields": {
                "op": "merge_dump",
                "document_id": document_id,
                "base": base,
                "local": local,
                "remote": remote,
                "merged": merged,
            }
        },
    )
