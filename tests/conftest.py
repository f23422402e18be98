# File: tests/conftest.py
import asyncio
from typing import Dict, List, Optional, Set, Tuple

import pytest

from page_scout.config import ScoutConfig
from page_scout.engine import ScanEngine
from page_scout.errors import HostError
from page_scout.host import SurfaceHost, extraction_routine
from page_scout.models import ScanKind, Surface, SurfaceId
from page_scout.registry import Subscriber
from page_scout.storage import MemoryStore, ResultStore

EXAMPLE_HTML = (
    '<html><head><title>T</title></head>'
    '<body><h1>A</h1><a href="/x">L</a></body></html>'
)


class FakeHost(SurfaceHost):
    """In-memory host: surfaces answer injections with their stored markup."""

    def __init__(self) -> None:
        super().__init__()
        self.surfaces: Dict[SurfaceId, Surface] = {}
        self.markup: Dict[SurfaceId, str] = {}
        self.injections: List[Tuple[SurfaceId, ScanKind]] = []
        self.refuse: Set[SurfaceId] = set()
        self.silent: Set[SurfaceId] = set()
        self.inject_delay: float = 0.0
        self._tasks: Set[asyncio.Task] = set()

    def add(self, surface_id: SurfaceId, url: Optional[str], markup: str = EXAMPLE_HTML) -> Surface:
        surface = Surface(id=surface_id, url=url)
        self.surfaces[surface_id] = surface
        self.markup[surface_id] = markup
        return surface

    async def load(self, surface_id: SurfaceId, url: str, markup: str = EXAMPLE_HTML) -> None:
        await self.notify_loaded(self.add(surface_id, url, markup))

    async def get_surface(self, surface_id):
        return self.surfaces.get(surface_id)

    async def list_surfaces(self):
        return list(self.surfaces.values())

    async def inject(self, surface_id, kind):
        self.injections.append((surface_id, kind))
        if self.inject_delay:
            await asyncio.sleep(self.inject_delay)
        if surface_id in self.refuse or surface_id not in self.surfaces:
            raise HostError(f"surface {surface_id} refused injection")
        if surface_id in self.silent:
            return
        event = extraction_routine(kind, self.surfaces[surface_id], self.markup[surface_id])
        task = asyncio.get_running_loop().create_task(self.post(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def settle(self) -> None:
        """Wait until every posted event has been handled by the engine."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


class Recorder(Subscriber):
    """Subscriber that keeps every hook call."""

    def __init__(self) -> None:
        super().__init__(
            on_update=lambda origin, totals: self.updates.append((origin, dict(totals))),
            on_complete=lambda result: self.completes.append(result),
            on_scan_complete=lambda summary: self.summaries.append(summary),
            on_scan_error=lambda reason: self.errors.append(reason),
        )
        self.updates: list = []
        self.completes: list = []
        self.summaries: list = []
        self.errors: list = []



@pytest.fixture()
def config() -> ScoutConfig:
    return ScoutConfig(scan_timeout=0.3)


@pytest.fixture()
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture()
def store() -> ResultStore:
    return ResultStore(durable=MemoryStore(), session=MemoryStore())


@pytest.fixture()
def engine(host, store, config) -> ScanEngine:
    return ScanEngine(host, store, config=config)


@pytest.fixture()
def recorder(engine) -> Recorder:
    rec = Recorder()
    engine.registry.subscribe(rec)
    return rec


@pytest.fixture()
def example_html() -> str:
    return EXAMPLE_HTML
