"""Metrics hook protocol and no-op default implementation.

coedit emits counters and timings at the points where a session does
something observable: pushes received, merges applied, writes attempted,
HTTP requests sent.  A :class:`NoopMetricsHook` is used unless
``CoeditConfig.metrics`` supplies a backend satisfying :class:`MetricsHook`.

Emitted metric names:

* ``coedit.requests_total``              -- counter
* ``coedit.retries_total``               -- counter
* ``coedit.rate_limited_total``          -- counter
* ``coedit.request_duration_ms``         -- timing
* ``coedit.rate_limit_wait_ms``          -- timing
* ``coedit.snapshots_total``             -- counter
* ``coedit.snapshots_suppressed_total``  -- counter
* ``coedit.merges_total``                -- counter
* ``coedit.merge_duration_ms``           -- timing
* ``coedit.writes_total``                -- counter
* ``coedit.write_failures_total``        -- counter
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Protocol that any metrics backend must satisfy.

    All methods accept an optional *tags* dict of string keys and values.
    """

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Increment a counter metric."""
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Record a duration in milliseconds."""
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to an absolute value."""
        ...


class NoopMetricsHook:
    """Metrics implementation that discards all data points."""

    __slots__ = ()

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        pass
