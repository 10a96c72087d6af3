"""Reconciliation sessions.

Exports
-------
ReconciliationSession
    One editor's Base/Working/Remote state for one document.
CoalescingWriter
    Timer-backed debounce/throttle of persistence writes.
"""

from .session import ReconciliationSession
from .writer import CoalescingWriter

__all__ = [
    "CoalescingWriter",
    "ReconciliationSession",
]
