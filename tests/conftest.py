"""
Pytest configuration and fixtures.
"""
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, List, Optional
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from provisioner.core.lifecycle_engine import LifecycleEngine
from provisioner.core.resource_store import InMemoryResourceStore
from provisioner.core.transition_scheduler import TransitionPolicy, TransitionScheduler
from provisioner.exceptions import InternalError
from provisioner.main import app
from provisioner.models.server import Server


@dataclass
class ScheduledTransition:
    server_id: UUID
    delay: float
    action: Callable[[UUID], None]
    name: str


class ManualScheduler:
    """
    Deterministic stand-in for TransitionScheduler.

    Nothing runs until the test calls run_next(), so every step of a
    server's lifecycle can be asserted in between.
    """

    def __init__(self):
        self.scheduled: List[ScheduledTransition] = []
        self.closed = False

    @property
    def pending_count(self) -> int:
        return len(self.scheduled)

    def pending(self, server_id: UUID) -> bool:
        return any(t.server_id == server_id for t in self.scheduled)

    def schedule(self, server_id, delay, action, name="transition") -> None:
        if self.closed:
            raise InternalError("Transition scheduler is shut down")
        if self.pending(server_id):
            raise InternalError(f"A transition is already pending for server {server_id}")
        self.scheduled.append(ScheduledTransition(server_id, delay, action, name))

    def run_next(self, server_id: Optional[UUID] = None) -> ScheduledTransition:
        """Fire the oldest pending transition (optionally for one server)."""
        transition = next(
            t for t in self.scheduled if server_id is None or t.server_id == server_id
        )
        self.scheduled.remove(transition)
        transition.action(transition.server_id)
        return transition

    async def cancel_all(self, timeout: float = 10.0) -> int:
        self.closed = True
        cancelled = len(self.scheduled)
        self.scheduled.clear()
        return cancelled


@pytest.fixture
def store() -> InMemoryResourceStore:
    return InMemoryResourceStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def policy() -> TransitionPolicy:
    """Default simulation delays; only recorded by the manual scheduler."""
    return TransitionPolicy(build_delay=35, teardown_delay=30, purge_delay=30)


@pytest.fixture
def engine(store, scheduler, policy) -> LifecycleEngine:
    return LifecycleEngine(store, scheduler=scheduler, policy=policy)


@pytest_asyncio.fixture
async def live_engine(store) -> AsyncGenerator[LifecycleEngine, None]:
    """Engine on a real scheduler with short delays."""
    engine = LifecycleEngine(
        store,
        scheduler=TransitionScheduler(),
        policy=TransitionPolicy(build_delay=0.01, teardown_delay=0.01, purge_delay=0.01),
    )
    yield engine
    await engine.shutdown()


@pytest.fixture
def web_spec() -> Server:
    return Server(name="web1", cpus=2, memory_gb=4, disk_gb=20)


@pytest_asyncio.fixture
async def test_client(engine) -> AsyncGenerator[AsyncClient, None]:
    """Create test client backed by the manually scheduled engine."""
    app.state.lifecycle_engine = engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    del app.state.lifecycle_engine
