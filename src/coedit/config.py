"""Configuration for coedit sessions and store collaborators.

:class:`CoeditConfig` captures every tuneable knob: how edits are
coalesced into writes, how the HTTP store talks to its backend, and where
metrics go.  Instances are shared by :class:`ReconciliationSession` and
:class:`HttpDocumentStore`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Literal


@dataclass
class CoeditConfig:
    """Complete configuration for coedit.

    Every parameter has a default; an in-memory setup needs none of them.

    Parameters
    ----------
    write_strategy:
        How rapid edits are coalesced into persistence writes.

        * ``"throttle"`` -- at most one write per ``write_interval_seconds``;
          the first edit after a quiet period is written at the next slot.
        * ``"debounce"`` -- every edit restarts the timer; the write happens
          once edits pause for ``write_interval_seconds``.
    write_interval_seconds:
        Coalescing interval for writes.
    flush_on_close:
        Write pending edits when a session is closed.
    token:
        Bearer token for the HTTP store.  Never logged.
    base_url:
        Root URL of the HTTP document store.
    collection:
        Name of the document collection on the HTTP store.
    poll_interval_seconds:
        Interval between polls of the HTTP store's push emulation.
    retry_max_attempts:
        Maximum number of attempts per read request for retryable errors.
        Writes are never retried by the transport.
    retry_base_delay:
        Base delay (seconds) for exponential backoff.
    retry_max_delay:
        Upper cap (seconds) on computed backoff delay.
    retry_jitter:
        Randomly scale backoff intervals to 50-100 % of their value.
    rate_limit_rps:
        Target requests per second for client-side pacing (spacing with a burst of 10).
    timeout_seconds:
        HTTP request timeout in seconds.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    debug_dump_merge:
        Log each merge's base/local/remote/result as a Merge dump debug record.
    """

    # ── Writes ──────────────────────────────────────────────────────────
    write_strategy: Literal["debounce", "throttle"] = "throttle"

    write_interval_seconds: float = 1.0

    flush_on_close: bool = True

    # ── HTTP store ──────────────────────────────────────────────────────
    token: str = ""

    base_url: str = "http://localhost:8080/v1"

    collection: str = "updates"

    poll_interval_seconds: float = 2.0

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 5

    retry_base_delay: float = 1.0

    retry_max_delay: float = 60.0

    retry_jitter: bool = True

    rate_limit_rps: float = 10.0

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_merge: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        parsed = urlparse(self.base_url)
        if parsed.scheme == "http" and parsed.hostname not in (
            "localhost",
            "127.0.0.1",
            "::1",
        ):
            raise ValueError(
                f"base_url uses insecure HTTP for non-local host '{parsed.hostname}'. "
                "Use HTTPS to protect your token, or target localhost for testing."
            )

        if self.write_strategy not in ("debounce", "throttle"):
            raise ValueError(
                f"write_strategy must be 'debounce' or 'throttle', got {self.write_strategy!r}"
            )
        if self.write_interval_seconds < 0:
            raise ValueError(
                f"write_interval_seconds must be >= 0, got {self.write_interval_seconds}"
            )
        if self.poll_interval_seconds <= 0:
            raise ValueError(
                f"poll_interval_seconds must be > 0, got {self.poll_interval_seconds}"
            )
        if not self.collection:
            raise ValueError("collection must be a non-empty string")
        if self.retry_max_attempts < 1:
            raise ValueError(f"retry_max_attempts must be >= 1, got {self.retry_max_attempts}")
        if self.retry_base_delay < 0:
            raise ValueError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.retry_max_delay < 0:
            raise ValueError(f"retry_max_delay must be >= 0, got {self.retry_max_delay}")
        if self.rate_limit_rps <= 0:
            raise ValueError(f"rate_limit_rps must be > 0, got {self.rate_limit_rps}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def __repr__(self) -> str:
        """Mask the token to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "token":
                masked = f"...{val[-4:]}" if len(val) >= 4 else "****"
                parts.append(f"token='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"CoeditConfig({', '.join(parts)})"
