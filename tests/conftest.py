"""Shared fixtures and helpers for tests."""

import random
from pathlib import Path

import pytest
import pytest_asyncio

from canvas_fs.core.events import ChangeBroadcaster, ChangeEvent
from canvas_fs.core.projects import ProjectService
from canvas_fs.core.tree import TreeService
from canvas_fs.db import InMemoryNodeStore
from canvas_fs.models import Project

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


class RecordingObserver:
    """Observer that keeps every event it is notified of."""

    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []

    async def notify(self, event: ChangeEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.type for e in self.events]


@pytest.fixture
def store() -> InMemoryNodeStore:
    return InMemoryNodeStore()


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def broadcaster(recorder: RecordingObserver) -> ChangeBroadcaster:
    b = ChangeBroadcaster()
    b.subscribe(recorder)
    return b


@pytest.fixture
def tree_service(store: InMemoryNodeStore, broadcaster: ChangeBroadcaster) -> TreeService:
    return TreeService(store, broadcaster, rng=random.Random(7))


@pytest.fixture
def project_service(store: InMemoryNodeStore, broadcaster: ChangeBroadcaster) -> ProjectService:
    return ProjectService(store, broadcaster)


@pytest_asyncio.fixture
async def project(project_service: ProjectService, recorder: RecordingObserver) -> Project:
    """An active project with only its seeded root; creation events are discarded."""
    created = await project_service.create_project("Demo")
    recorder.events.clear()
    return created
