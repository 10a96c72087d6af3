"""Tests for store/http.py: REST document store with polling pushes.

Requests are served by ``httpx.MockTransport``; no network is used.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from coedit.config import CoeditConfig
from coedit.errors import (
    CoeditAuthError,
    CoeditNetworkError,
    CoeditNotFoundError,
    CoeditResponseError,
    CoeditWriteError,
)
from coedit.store.base import DocumentStore
from coedit.store.http import HttpDocumentStore
from coedit.store.transport import AsyncStoreTransport

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def make_config(**overrides) -> CoeditConfig:
    """Return a CoeditConfig tuned for fast, deterministic tests."""
    defaults = dict(
        token="test-token-1234",
        retry_max_attempts=3,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
        rate_limit_rps=10_000.0,
        poll_interval_seconds=0.01,
    )
    defaults.update(overrides)
    return CoeditConfig(**defaults)


def make_store(handler, **overrides) -> HttpDocumentStore:
    config = make_config(**overrides)
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url=config.base_url,
    )
    return HttpDocumentStore(config, AsyncStoreTransport(config, client=client))


class RecordingHandler:
    """MockTransport handler replaying canned responses and logging requests."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


# =========================================================================
# Reads
# =========================================================================


class TestLoad:
    async def test_load_returns_document(self, bulletin):
        handler = RecordingHandler(httpx.Response(200, json=bulletin))
        async with make_store(handler) as store:
            assert await store.load_document("u1") == bulletin

        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/v1/updates/u1"
        assert request.headers["Authorization"] == "Bearer test-token-1234"

    async def test_missing_document_raises_not_found(self):
        handler = RecordingHandler(httpx.Response(404, json={"message": "no such doc"}))
        async with make_store(handler) as store:
            with pytest.raises(CoeditNotFoundError) as exc_info:
                await store.load_document("u1")
        assert exc_info.value.context == {"document_id": "u1"}
        assert len(handler.requests) == 1

    async def test_load_retries_transient_failures(self, bulletin):
        handler = RecordingHandler(
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json=bulletin),
        )
        async with make_store(handler) as store:
            assert await store.load_document("u1") == bulletin
        assert len(handler.requests) == 3

    async def test_custom_collection_path(self, bulletin):
        handler = RecordingHandler(httpx.Response(200, json=bulletin))
        async with make_store(handler, collection="bulletins") as store:
            await store.load_document("u9")
        assert handler.requests[0].url.path == "/v1/bulletins/u9"


# =========================================================================
# Writes
# =========================================================================


class TestCreate:
    async def test_create_posts_document_and_returns_id(self, bulletin):
        handler = RecordingHandler(httpx.Response(201, json={"id": "u42"}))
        async with make_store(handler) as store:
            assert await store.create_document(bulletin) == "u42"

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/updates"
        assert json.loads(request.content) == bulletin

    async def test_numeric_id_returned_as_string(self):
        handler = RecordingHandler(httpx.Response(201, json={"id": 42}))
        async with make_store(handler) as store:
            assert await store.create_document({}) == "42"

    async def test_response_without_id_is_write_error(self):
        handler = RecordingHandler(httpx.Response(201, json={"ok": True}))
        async with make_store(handler) as store:
            with pytest.raises(CoeditWriteError, match="no document id"):
                await store.create_document({})

    async def test_create_not_retried(self):
        handler = RecordingHandler(httpx.Response(500))
        async with make_store(handler) as store:
            with pytest.raises(CoeditWriteError) as exc_info:
                await store.create_document({})
        assert len(handler.requests) == 1
        assert exc_info.value.context["operation"] == "create"

    async def test_html_success_page_is_write_error(self):
        handler = RecordingHandler(httpx.Response(200, content=b"<html>proxy error</html>"))
        async with make_store(handler) as store:
            with pytest.raises(CoeditWriteError) as exc_info:
                await store.create_document({})
        assert isinstance(exc_info.value.cause, CoeditResponseError)
        assert exc_info.value.context["operation"] == "create"


class TestUpdate:
    async def test_update_patches_partial(self):
        handler = RecordingHandler(httpx.Response(204))
        async with make_store(handler) as store:
            await store.update_document("u1", {"sale": []})

        request = handler.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == "/v1/updates/u1"
        assert json.loads(request.content) == {"sale": []}

    async def test_auth_failure_wrapped_as_write_error(self):
        handler = RecordingHandler(httpx.Response(403, json={"message": "forbidden"}))
        async with make_store(handler) as store:
            with pytest.raises(CoeditWriteError) as exc_info:
                await store.update_document("u1", {"date": "x"})
        assert isinstance(exc_info.value.cause, CoeditAuthError)
        assert exc_info.value.context == {"document_id": "u1", "operation": "update"}

    async def test_network_failure_wrapped_and_not_retried(self):
        handler = RecordingHandler(httpx.ConnectError("connection refused"))
        async with make_store(handler) as store:
            with pytest.raises(CoeditWriteError) as exc_info:
                await store.update_document("u1", {"date": "x"})
        assert isinstance(exc_info.value.cause, CoeditNetworkError)
        assert len(handler.requests) == 1

    async def test_html_success_page_is_write_error(self):
        handler = RecordingHandler(httpx.Response(200, content=b"<html>proxy error</html>"))
        async with make_store(handler) as store:
            with pytest.raises(CoeditWriteError) as exc_info:
                await store.update_document("u1", {"date": "x"})
        assert isinstance(exc_info.value.cause, CoeditResponseError)
        assert len(handler.requests) == 1


# =========================================================================
# Push channel
# =========================================================================


class TestSubscribe:
    def test_satisfies_protocol(self):
        store = make_store(RecordingHandler(httpx.Response(200, json={})))
        assert isinstance(store, DocumentStore)

    async def test_delivers_only_changed_snapshots(self, bulletin):
        current = {"doc": bulletin}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=current["doc"])

        received: list[dict] = []
        async with make_store(handler) as store:
            sub = store.subscribe("u1", received.append)
            await asyncio.sleep(0.05)
            assert received == [bulletin]

            current["doc"] = {**bulletin, "sale": []}
            await asyncio.sleep(0.05)
            assert received == [bulletin, {**bulletin, "sale": []}]

            sub.unsubscribe()
            await asyncio.sleep(0)
            current["doc"] = {**bulletin, "new": []}
            await asyncio.sleep(0.05)
            assert len(received) == 2

    async def test_poll_failures_do_not_stop_polling(self, bulletin):
        handler = RecordingHandler(
            httpx.Response(404, json={"message": "not yet"}),
            httpx.Response(200, json=bulletin),
        )
        received: list[dict] = []
        async with make_store(handler) as store:
            store.subscribe("u1", received.append)
            await asyncio.sleep(0.08)
        assert received == [bulletin]
        assert len(handler.requests) >= 2

    async def test_undecodable_poll_response_does_not_stop_polling(self, bulletin):
        changed = {**bulletin, "sale": []}
        handler = RecordingHandler(
            httpx.Response(200, json=bulletin),
            httpx.Response(200, content=b"<html>proxy error</html>"),
            httpx.Response(200, json=changed),
        )
        received: list[dict] = []
        async with make_store(handler) as store:
            sub = store.subscribe("u1", received.append)
            await asyncio.sleep(0.08)
            assert len(store._polls) == 1
            assert sub.active
        assert received == [bulletin, changed]

    async def test_failing_subscriber_still_gets_later_changes(self, bulletin):
        current = {"doc": bulletin}

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=current["doc"])

        received: list[dict] = []

        def on_snapshot(doc: dict) -> None:
            received.append(doc)
            if len(received) == 1:
                raise RuntimeError("listener bug")

        async with make_store(handler) as store:
            store.subscribe("u1", on_snapshot)
            await asyncio.sleep(0.05)
            assert received == [bulletin]

            current["doc"] = {**bulletin, "sale": []}
            await asyncio.sleep(0.05)
            assert len(store._polls) == 1
        assert received == [bulletin, {**bulletin, "sale": []}]

    async def test_close_cancels_polling(self, bulletin):
        handler = RecordingHandler(httpx.Response(200, json=bulletin))
        store = make_store(handler)
        store.subscribe("u1", lambda doc: None)
        store.subscribe("u2", lambda doc: None)
        await asyncio.sleep(0.02)
        await store.close()

        assert store._polls == set()
        count = len(handler.requests)
        await asyncio.sleep(0.03)
        assert len(handler.requests) == count
