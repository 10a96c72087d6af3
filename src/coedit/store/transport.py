"""Async HTTP transport for the document store.

Request lifecycle:

1. Wait for a pacing slot.
2. Send the HTTP request with the bearer token.
3. On ``2xx`` -- return the body, which must be a JSON object (or empty).
4. On ``429`` / ``5xx`` / network error -- back off and try again, but only
   for reads.  Writes get a single attempt: the session owns their retry.
5. On non-retryable ``4xx`` -- raise the matching typed error immediately.
6. On max attempts exceeded -- raise :class:`CoeditRetryExhaustedError`.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Any

import httpx

from coedit.config import CoeditConfig
from coedit.errors import (
    CoeditAuthError,
    CoeditNetworkError,
    CoeditNotFoundError,
    CoeditResponseError,
    CoeditRetryExhaustedError,
    CoeditValidationError,
)
from coedit.observability import NoopMetricsHook, get_logger

from .pacing import RequestPacer

log = get_logger("coedit.transport")

# Responses worth another attempt on a read.
_TRANSIENT_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

# Reads repeat safely; everything else is attempted once.
_READ_METHODS: frozenset[str] = frozenset({"GET", "HEAD"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _decode_body(response: httpx.Response, method: str, path: str) -> dict:
    """Return a 2xx response's JSON object, or ``{}`` when it has no body."""
    if response.status_code == 204 or not response.content:
        return {}
    context: dict[str, Any] = {
        "status_code": response.status_code,
        "method": method,
        "path": path,
        "body": response.text[:200],
    }
    try:
        body = response.json()
    except ValueError as exc:
        raise CoeditResponseError(
            f"Response to {method} {path} is not JSON",
            context={**context, "reason": "invalid_json"},
            cause=exc,
        ) from exc
    if not isinstance(body, dict):
        raise CoeditResponseError(
            f"Response to {method} {path} is a JSON {type(body).__name__}, expected an object",
            context={**context, "reason": "not_an_object"},
        )
    return body


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`CoeditError` subclass matching a non-retryable 4xx."""
    status = response.status_code
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {"body": body}

    message = body.get("message", response.text[:500])

    if status in (401, 403):
        raise CoeditAuthError(
            f"Authorization failed on {method} {path}: {message}",
            context={"status_code": status},
        )
    if status == 404:
        raise CoeditNotFoundError(
            f"Resource not found on {method} {path}: {message}",
            context={"status_code": status, "path": path},
        )
    raise CoeditValidationError(
        f"Client error {status} on {method} {path}: {message}",
        context={"status_code": status, "body": body},
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class AsyncStoreTransport:
    """Asynchronous HTTP transport with auth, read retries, and pacing.

    Parameters
    ----------
    config:
        Controls base URL, credentials, timeouts, retries, and pacing.
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests pass one backed by
        ``httpx.MockTransport``).  The transport closes it either way.
    """

    def __init__(self, config: CoeditConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._pacer = RequestPacer(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()

        headers = {"Content-Type": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        if client is None:
            client = httpx.AsyncClient(
                base_url=config.base_url,
                headers=headers,
                timeout=httpx.Timeout(config.timeout_seconds),
                proxy=config.http_proxy,
            )
        else:
            client.headers.update(headers)
        self._client = client

    # ------------------------------------------------------------------
    # Retry policy
    # ------------------------------------------------------------------

    def attempts_for(self, method: str) -> int:
        """Reads get ``retry_max_attempts``; writes get exactly one."""
        if method.upper() in _READ_METHODS:
            return self._config.retry_max_attempts
        return 1

    def backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """Delay before attempt ``attempt + 1``.

        A ``Retry-After`` from the store is honoured exactly.  Otherwise
        the delay doubles from ``retry_base_delay`` up to
        ``retry_max_delay`` and, with ``retry_jitter``, is scaled to a
        random 50-100 % so pollers sharing a store spread out.
        """
        if retry_after is not None:
            return retry_after
        delay = min(
            self._config.retry_base_delay * (2 ** attempt),
            self._config.retry_max_delay,
        )
        if self._config.retry_jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute an HTTP request against the store.

        Parameters
        ----------
        method, path:
            HTTP method and path relative to ``base_url``.
        **kwargs:
            Forwarded to ``httpx.AsyncClient.request``.

        Returns
        -------
        dict
            The decoded JSON object (``{}`` for empty responses).

        Raises
        ------
        CoeditResponseError
            If a ``2xx`` body is not a JSON object.
        """
        max_attempts = self.attempts_for(method)
        last_exception: Exception | None = None
        last_status: int | None = None

        for attempt in range(max_attempts):
            wait = await self._pacer.wait()
            if wait > 0:
                self._metrics.timing(
                    "coedit.rate_limit_wait_ms",
                    wait * 1000,
                    tags={"method": method, "path": path},
                )

            t0 = time.monotonic()
            try:
                response = await self._client.request(method, path, **kwargs)
                elapsed_ms = (time.monotonic() - t0) * 1000
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                last_exception = exc
                last_status = None
                delay = self._handle_network_exception(method, path, exc, attempt, max_attempts)
                await asyncio.sleep(delay)
                continue

            last_status = response.status_code
            last_exception = None
            tags = {"method": method, "path": path, "status": str(response.status_code)}
            self._metrics.increment("coedit.requests_total", tags=tags)
            self._metrics.timing("coedit.request_duration_ms", elapsed_ms, tags=tags)

            if 200 <= response.status_code < 300:
                return _decode_body(response, method, path)

            if response.status_code not in _TRANSIENT_STATUSES:
                _raise_for_status(response, method, path)

            if attempt + 1 >= max_attempts:
                break

            retry_after: float | None = None
            reason = "server_error"
            if response.status_code == 429:
                retry_after = _parse_retry_after(response)
                reason = "rate_limited"
                self._metrics.increment(
                    "coedit.rate_limited_total",
                    tags={"method": method, "path": path},
                )
                log.warning(
                    "Rate limited by document store",
                    extra={
                        "extra_fields": {
                            "op": "request",
                            "method": method,
                            "path": path,
                            "retry_after": retry_after,
                            "attempt": attempt + 1,
                        }
                    },
                )

            self._metrics.increment(
                "coedit.retries_total",
                tags={"method": method, "path": path, "reason": reason},
            )
            await asyncio.sleep(self.backoff(attempt, retry_after))

        ctx: dict[str, Any] = {
            "attempts": max_attempts,
            "last_status_code": last_status,
        }
        if last_exception is not None:
            raise CoeditRetryExhaustedError(
                f"All {max_attempts} attempts exhausted for {method} {path} "
                f"(last error: {last_exception})",
                context=ctx,
                cause=last_exception,
            )
        raise CoeditRetryExhaustedError(
            f"All {max_attempts} attempts exhausted for {method} {path} "
            f"(last status: {last_status})",
            context=ctx,
        )

    def _handle_network_exception(
        self,
        method: str,
        path: str,
        exc: Exception,
        attempt: int,
        max_attempts: int,
    ) -> float:
        """Return the backoff delay if another attempt is allowed, else raise."""
        self._metrics.increment(
            "coedit.requests_total",
            tags={"method": method, "path": path, "status": "error"},
        )
        log.warning(
            "Request network error",
            extra={
                "extra_fields": {
                    "op": "request",
                    "method": method,
                    "path": path,
                    "attempt": attempt + 1,
                    "error": str(exc),
                }
            },
        )
        if attempt + 1 < max_attempts:
            self._metrics.increment(
                "coedit.retries_total",
                tags={"method": method, "path": path, "reason": "network_error"},
            )
            return self.backoff(attempt)
        raise CoeditNetworkError(
            f"Network error on {method} {path}: {exc}",
            context={"url": path, "attempt": attempt + 1},
            cause=exc,
        ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncStoreTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
