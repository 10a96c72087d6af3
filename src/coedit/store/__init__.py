"""coedit.store -- document store collaborators.

This sub-package provides:

* :mod:`.base` -- the :class:`DocumentStore` protocol and :class:`Subscription` handle.
* :mod:`.memory` -- an in-process store with push delivery.
* :mod:`.http` -- a REST store with a polling push channel.
* :mod:`.transport` -- HTTP transport with auth, read retries, and typed errors.
* :mod:`.pacing` -- client-side request pacing.
"""

from __future__ import annotations

from .base import DocumentStore, SnapshotCallback, Subscription
from .http import HttpDocumentStore
from .memory import InMemoryDocumentStore
from .pacing import RequestPacer
from .transport import AsyncStoreTransport

__all__ = [
    "AsyncStoreTransport",
    "DocumentStore",
    "HttpDocumentStore",
    "InMemoryDocumentStore",
    "RequestPacer",
    "SnapshotCallback",
    "Subscription",
]
