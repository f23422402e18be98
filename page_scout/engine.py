# File: page_scout/engine.py
"""page_scout.engine: one-shot and runtime scan state machines.

One engine instance owns all scan state: the pending one-shot requests (one
per surface) and at most one active :class:`RuntimeSession`. Every
transition happens on the event loop in reaction to a command, an injection
acknowledgement, a raw-markup event or a deadline; nothing here blocks.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from page_scout.aggregator import RuntimeSession
from page_scout.config import ScoutConfig
from page_scout.errors import (
    ExtractionFailure,
    InjectionDenied,
    ScanAlreadyPending,
    ScanTimeout,
    ScoutError,
)
from page_scout.extractor import StructuralSummary, extract
from page_scout.host import SurfaceHost
from page_scout.logger import log_swallowed, logger
from page_scout.models import (
    RawMarkupEvent,
    RuntimeRun,
    ScanKind,
    ScanMeta,
    ScanRecord,
    StopResult,
    Surface,
    SurfaceId,
)
from page_scout.registry import SubscriptionRegistry
from page_scout.storage import ResultStore
from page_scout.utils import ARCHIVE_PREFIX, RUN_PREFIX, MonotonicClock, is_injectable_url, make_key, origin_key

__all__ = ["ScanEngine"]


class ScanEngine:
    """Runs extractions against host surfaces and fans results out to storage and subscribers."""

    def __init__(
        self,
        host: SurfaceHost,
        store: ResultStore,
        *,
        config: Optional[ScoutConfig] = None,
        registry: Optional[SubscriptionRegistry] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.host = host
        self.store = store
        self.config = config or ScoutConfig()
        self.registry = registry or SubscriptionRegistry()
        self.clock = clock or MonotonicClock()
        self._pending: Dict[SurfaceId, asyncio.Future[StructuralSummary]] = {}
        self._session: Optional[RuntimeSession] = None
        host.connect(self.receive)

    # ------------------------------------------------------------------ helpers

    def _injectable(self, url: Optional[str]) -> bool:
        return is_injectable_url(url, self.config.injectable_schemes)

    def _extract(self, markup: str) -> StructuralSummary:
        try:
            return extract(markup, script_preview=self.config.inline_script_preview)
        except ExtractionFailure:
            raise
        except Exception as exc:
            raise ExtractionFailure(str(exc)) from exc

    async def _surface(self, surface_id: Optional[SurfaceId]) -> Optional[Surface]:
        if surface_id is None:
            return None
        try:
            return await self.host.get_surface(surface_id)
        except Exception as exc:
            logger.warning("Host could not resolve surface %s: %s", surface_id, exc)
            return None

    # ----------------------------------------------------------------- one-shot

    def is_pending(self, surface_id: SurfaceId) -> bool:
        return surface_id in self._pending

    async def run_one_time_scan(self, surface_id: SurfaceId) -> StructuralSummary:
        """Scan one surface and return its summary.

        Raises :class:`InjectionDenied`, :class:`ScanTimeout`,
        :class:`ExtractionFailure` or :class:`ScanAlreadyPending`; each failure
        is also delivered to subscribers as ``scanError``.
        """
        try:
            summary = await self._one_time(surface_id)
        except ScoutError as err:
            logger.warning("One-time scan of surface %s failed (%s): %s", surface_id, type(err).__name__, err.reason)
            self.registry.emit("scanError", err.reason)
            raise
        logger.info("One-time scan of surface %s completed", surface_id)
        self.registry.emit("scanComplete", summary)
        return summary

    async def _one_time(self, surface_id: SurfaceId) -> StructuralSummary:
        if surface_id in self._pending:
            raise ScanAlreadyPending()
        # slot reserved before the first await: a concurrent request sees it
        future: asyncio.Future[StructuralSummary] = asyncio.get_running_loop().create_future()
        self._pending[surface_id] = future
        try:
            surface = await self._surface(surface_id)
            if surface is None or not self._injectable(surface.url):
                raise InjectionDenied(
                    "This page does not allow the extraction routine (unsupported address)."
                )
            try:
                await self.host.inject(surface_id, ScanKind.ONE_TIME)
            except Exception as exc:
                raise InjectionDenied("Injection failed on this page.") from exc
            try:
                return await asyncio.wait_for(future, timeout=self.config.scan_timeout)
            except asyncio.TimeoutError:
                raise ScanTimeout() from None
        finally:
            if self._pending.get(surface_id) is future:
                del self._pending[surface_id]
            if not future.done():
                future.cancel()

    # ------------------------------------------------------------------ inbound

    async def receive(self, event: Union[RawMarkupEvent, Mapping[str, Any]]) -> None:
        """Entry point for raw-markup events posted by extraction routines."""
        timestamp = self.clock()
        if not isinstance(event, RawMarkupEvent):
            try:
                event = RawMarkupEvent.model_validate(event)
            except ValidationError as exc:
                logger.warning("Dropping malformed raw-markup event: %s", exc)
                return
        if event.kind is ScanKind.ONE_TIME:
            await self._accept_one_time(event, timestamp)
        else:
            await self._accept_runtime(event, timestamp)

    async def _accept_one_time(self, event: RawMarkupEvent, timestamp: int) -> None:
        future = self._pending.get(event.surface_id) if event.surface_id is not None else None
        try:
            summary = self._extract(event.markup)
        except ExtractionFailure as err:
            logger.warning("ExtractionFailure on surface %s: %s", event.surface_id, err.reason)
            if future is not None and not future.done():
                future.set_exception(err)
            return

        url = event.url
        if url is None:
            surface = await self._surface(event.surface_id)
            url = surface.url if surface else None
        meta = ScanMeta(
            timestamp=timestamp,
            surface_id=event.surface_id,
            url=url,
            title=summary["head"]["title"] or event.title or None,
        )
        record = ScanRecord(meta=meta, summary=summary)

        # the deadline covers arrival only; storage latency never fails a scan
        if future is not None and not future.done():
            future.set_result(summary)
        else:
            logger.debug("One-time result for surface %s archived without a pending request", event.surface_id)

        await self._persist(record)

    async def _persist(self, record: ScanRecord) -> None:
        key = make_key(ARCHIVE_PREFIX, record.meta.timestamp)
        await self.store.put_durable(key, record)
        await self.store.set_session_global(record)
        if record.meta.surface_id is not None:
            await self.store.update_session_per_surface(record.meta.surface_id, record)

    # ------------------------------------------------------------------ runtime

    @property
    def runtime_active(self) -> bool:
        return self._session is not None and self._session.active

    def status(self) -> Dict[str, Any]:
        session = self._session if self.runtime_active else None
        return {
            "active": session is not None,
            "total_scans": session.total_scans if session else 0,
            "pages_count": session.pages_count if session else 0,
            "started_at": session.started_at if session else None,
        }

    async def start_runtime(self) -> bool:
        """Start a runtime session; ``False`` when one is already active."""
        if self.runtime_active:
            return False
        session = RuntimeSession(started_at=self.clock())
        self._session = session
        self.host.add_load_listener(self._on_surface_loaded)
        logger.info("Runtime scan started at %s", session.started_at)
        self.registry.emit("runtimeUpdate", None, session.totals())

        try:
            surfaces = await self.host.list_surfaces()
        except Exception as exc:
            logger.warning("Host could not list surfaces: %s", exc)
            surfaces = []
        for surface in surfaces:
            if self._session is not session or not session.active:
                break
            if self._injectable(surface.url):
                await self._inject_runtime(surface.id)
        return True

    async def _on_surface_loaded(self, surface: Surface) -> None:
        if not self.runtime_active or not self._injectable(surface.url):
            return
        await self._inject_runtime(surface.id)

    async def _inject_runtime(self, surface_id: SurfaceId) -> None:
        try:
            await self.host.inject(surface_id, ScanKind.RUNTIME)
        except Exception as exc:
            log_swallowed(InjectionDenied(str(exc)), f"runtime injection into surface {surface_id}")

    async def _accept_runtime(self, event: RawMarkupEvent, timestamp: int) -> None:
        session = self._session
        if session is None or not session.active:
            logger.debug("Runtime event from surface %s ignored: runtime not active", event.surface_id)
            return
        try:
            summary = self._extract(event.markup)
            url = event.url
            if url is None:
                surface = await self._surface(event.surface_id)
                url = surface.url if surface else None
            if self._session is not session or not session.active:
                return
            origin = origin_key(url)
            meta = ScanMeta(
                timestamp=timestamp,
                surface_id=event.surface_id,
                url=url,
                title=summary["head"]["title"] or event.title or None,
            )
            totals = session.append(origin, ScanRecord(meta=meta, summary=summary))
        except Exception as exc:
            err = exc if isinstance(exc, ScoutError) else ExtractionFailure(str(exc))
            log_swallowed(err, f"runtime event from surface {event.surface_id} (dropped)")
            return
        logger.debug("Runtime scan #%d for %s", totals["total_scans"], origin)
        self.registry.emit("runtimeUpdate", origin, totals)

    async def stop_runtime(self) -> StopResult:
        """Finalize the active session, persist it as ``run:<ts>`` and notify subscribers."""
        session = self._session
        if session is None or not session.active:
            return StopResult(ok=False, error="Runtime scan is not active.")

        stopped_at = self.clock()
        run = session.finalize(stopped_at)
        self._session = None
        self.host.remove_load_listener(self._on_surface_loaded)

        key = make_key(RUN_PREFIX, stopped_at)
        await self.store.put_run(key, run)
        logger.info(
            "Runtime scan stopped: %d scans across %d pages saved as %s",
            run.total_scans,
            run.pages_count,
            key,
        )
        result = StopResult(ok=True, key=key, run=run)
        self.registry.emit("runtimeComplete", result)
        return result

    # -------------------------------------------------------------------- reads

    async def list_archive(self) -> List[Tuple[str, ScanRecord]]:
        return await self.store.list_durable()

    async def get_archived(self, key: str) -> Optional[ScanRecord]:
        return await self.store.get_durable(key)

    async def list_runs(self) -> List[Tuple[str, RuntimeRun]]:
        return await self.store.list_runs()

    async def last_run(self) -> Tuple[Optional[str], Optional[RuntimeRun]]:
        return await self.store.last_run()

    async def session_result(self, surface_id: Optional[SurfaceId] = None) -> Optional[ScanRecord]:
        """Latest ephemeral record overall, or for one surface."""
        if surface_id is None:
            return await self.store.get_session_global()
        return await self.store.get_session_per_surface(surface_id)

    async def session_map(self) -> Dict[str, ScanRecord]:
        return await self.store.get_session_map()
