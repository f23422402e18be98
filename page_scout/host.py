# === FILE: page_scout/host.py ===
"""Host platform interface for PageScout.

The engine never talks to pages directly. A :class:`SurfaceHost` enumerates
surfaces (open pages), injects the extraction routine into one of them and
tells its listeners when a surface finishes loading. The routine answers
asynchronously by posting a :class:`~page_scout.models.RawMarkupEvent` to
the sink connected with :meth:`SurfaceHost.connect`.

:class:`HttpSurfaceHost` is the concrete host used by the CLI: a surface is
a URL opened through :meth:`HttpSurfaceHost.open` and "injection" downloads
it with aiohttp.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from aiohttp import ClientError, ClientSession, ClientTimeout

from page_scout.config import ScoutConfig
from page_scout.errors import HostError
from page_scout.models import RawMarkupEvent, ScanKind, Surface, SurfaceId

__all__ = ("SurfaceHost", "HttpSurfaceHost", "LoadListener", "EventSink", "extraction_routine")

LoadListener = Callable[[Surface], Awaitable[None]]
EventSink = Callable[[RawMarkupEvent], Awaitable[Any]]


def extraction_routine(kind: ScanKind, surface: Surface, markup: str) -> RawMarkupEvent:
    """The fixed routine: package a surface's markup as a raw-markup event."""
    return RawMarkupEvent(
        kind=kind,
        markup=markup,
        surface_id=surface.id,
        url=surface.url,
        title=surface.title,
    )


class SurfaceHost(ABC):
    """Surface enumeration, injection and load notifications."""

    def __init__(self) -> None:
        self._sink: Optional[EventSink] = None
        self._load_listeners: List[LoadListener] = []
        self.logger = logging.getLogger("PageScout")

    def connect(self, sink: EventSink) -> None:
        """Where extraction routines post their raw-markup events."""
        self._sink = sink

    def add_load_listener(self, listener: LoadListener) -> None:
        if listener not in self._load_listeners:
            self._load_listeners.append(listener)

    def remove_load_listener(self, listener: LoadListener) -> None:
        if listener in self._load_listeners:
            self._load_listeners.remove(listener)

    async def notify_loaded(self, surface: Surface) -> None:
        for listener in list(self._load_listeners):
            try:
                await listener(surface)
            except Exception as exc:
                self.logger.error("Load listener failed for surface %s: %s", surface.id, exc)

    async def post(self, event: RawMarkupEvent) -> None:
        if self._sink is None:
            self.logger.warning("Dropping raw-markup event from surface %s: no sink", event.surface_id)
            return
        await self._sink(event)

    @abstractmethod
    async def get_surface(self, surface_id: SurfaceId) -> Optional[Surface]:
        """Surface by id, or ``None`` when it does not exist."""

    @abstractmethod
    async def list_surfaces(self) -> List[Surface]:
        """Every currently open surface."""

    @abstractmethod
    async def inject(self, surface_id: SurfaceId, kind: ScanKind) -> None:
        """Load the extraction routine into a surface; raises :class:`HostError` on refusal."""


class HttpSurfaceHost(SurfaceHost):
    """Surfaces are plain URLs fetched with aiohttp."""

    def __init__(self, config: ScoutConfig) -> None:
        super().__init__()
        self.config = config
        self.session: Optional[ClientSession] = None
        self._surfaces: Dict[SurfaceId, Surface] = {}
        self._ids = itertools.count(1)
        self._posts: Set[asyncio.Task[None]] = set()

    async def __aenter__(self) -> HttpSurfaceHost:
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.config.request_timeout),
            headers={"User-Agent": self.config.user_agent},
            raise_for_status=False,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._posts:
            await asyncio.gather(*self._posts, return_exceptions=True)
        if self.session and not self.session.closed:
            await self.session.close()

    # surface management ------------------------------------------------------

    async def open(self, url: str) -> Surface:
        """Open a new surface on *url* and announce that it finished loading."""
        surface = Surface(id=next(self._ids), url=url)
        self._surfaces[surface.id] = surface
        await self.notify_loaded(surface)
        return surface

    async def navigate(self, surface_id: SurfaceId, url: str) -> Surface:
        if surface_id not in self._surfaces:
            raise HostError(f"No surface with id {surface_id}")
        surface = Surface(id=surface_id, url=url)
        self._surfaces[surface_id] = surface
        await self.notify_loaded(surface)
        return surface

    def close(self, surface_id: SurfaceId) -> None:
        self._surfaces.pop(surface_id, None)

    async def get_surface(self, surface_id: SurfaceId) -> Optional[Surface]:
        return self._surfaces.get(surface_id)

    async def list_surfaces(self) -> List[Surface]:
        return list(self._surfaces.values())

    # injection ---------------------------------------------------------------

    async def inject(self, surface_id: SurfaceId, kind: ScanKind) -> None:
        if not self.session:
            raise RuntimeError("Session not initialized")
        surface = self._surfaces.get(surface_id)
        if surface is None or not surface.url:
            raise HostError(f"No surface with id {surface_id}")
        try:
            async with self.session.get(surface.url) as resp:
                if resp.status >= 400:
                    raise HostError(f"{surface.url} answered HTTP {resp.status}")
                markup = await resp.text()
        except (ClientError, asyncio.TimeoutError) as exc:
            raise HostError(f"{surface.url} is not retrievable: {exc}") from exc

        # the routine answers after injection is acknowledged, like a content script
        task = asyncio.create_task(self.post(extraction_routine(kind, surface, markup)))
        self._posts.add(task)
        task.add_done_callback(self._posts.discard)
