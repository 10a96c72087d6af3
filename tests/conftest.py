"""Shared test fixtures for the coedit test suite."""

from __future__ import annotations

import asyncio

import pytest

from coedit.config import CoeditConfig
from coedit.store.memory import InMemoryDocumentStore


async def _settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def settle():
    """Await ``settle()`` to let pushes and zero-delay timers run."""
    return _settle


@pytest.fixture
def config() -> CoeditConfig:
    """Configuration whose writes only happen on explicit flush()."""
    return CoeditConfig(write_interval_seconds=3600.0, write_strategy="debounce")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def bulletin() -> dict:
    """A stored bulletin with one item in each of two collections."""
    return {
        "date": "2026-10-15T00:00:00+00:00",
        "podium": {"id": "veh-9", "name": "Pegassi Toros", "url": None},
        "time_trial": None,
        "rc_time_trial": None,
        "premium_race": None,
        "new": [{"id": "veh-1", "name": "Itali RSX"}],
        "sale": [{"id": "veh-2", "name": "Turismo R", "amount": 30}],
        "twitch_prime": [],
        "bonus_activities": [],
        "targeted_sale": [],
    }
