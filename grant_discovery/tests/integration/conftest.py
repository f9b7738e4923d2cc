"""Integration fixtures: a fully wired orchestrator over the in-memory fakes."""

import itertools

import pytest
from tenacity import wait_none

from grant_discovery.orchestrator import SyncContext, SyncOrchestrator


class SteppingClock:
    """Monotonic clock that advances a fixed step on every read."""

    def __init__(self, step: float = 1.0) -> None:
        self._ticks = itertools.count(0.0, step)

    def __call__(self) -> float:
        return next(self._ticks)


@pytest.fixture
def clock():
    return SteppingClock(step=1.0)


@pytest.fixture
def sync_context(config, db, registry, anthropic_client, clock) -> SyncContext:
    return SyncContext(
        config=config,
        db=db,
        registry=registry,
        anthropic_client=anthropic_client,
        clock=clock,
    )


@pytest.fixture
def orchestrator(sync_context) -> SyncOrchestrator:
    return SyncOrchestrator(sync_context, finalize_wait=wait_none())


@pytest.fixture
def stepping_clock():
    return SteppingClock
