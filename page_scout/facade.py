# File: page_scout/facade.py
"""page_scout.facade: translates command messages into ScanEngine calls.

Commands are plain mappings ``{"type": ..., **payload}``. Replies are
returned from :meth:`ScanFacade.handle`; lifecycle events are relayed as
messages through the optional ``send`` callable and, as hook calls, to
every subscriber registered with :meth:`ScanFacade.subscribe`.

Messages use camelCase field names (``totalScans``, ``surfaceId``, ...);
hook calls receive the engine's own objects unchanged.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Union

from page_scout.engine import ScanEngine
from page_scout.errors import ScoutError
from page_scout.extractor import StructuralSummary
from page_scout.logger import log_swallowed, logger
from page_scout.models import RuntimeRun, ScanMeta, ScanRecord, StopResult, SurfaceId

__all__ = ["ScanFacade"]

Send = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


# wire format ------------------------------------------------------------------
# Python objects stay snake_case; everything leaving the facade is camelCase.


def _wire_summary(summary: StructuralSummary) -> Dict[str, Any]:
    stats = summary["stats"]
    return {
        "head": summary["head"],
        "body": summary["body"],
        "stats": {
            "totalElements": stats["total_elements"],
            "depth": stats["depth"],
            "tagCount": dict(stats["tag_count"]),
        },
    }


def _wire_meta(meta: ScanMeta) -> Dict[str, Any]:
    return {
        "timestamp": meta.timestamp,
        "surfaceId": meta.surface_id,
        "url": meta.url,
        "title": meta.title,
    }


def _wire_record(record: ScanRecord) -> Dict[str, Any]:
    return {"meta": _wire_meta(record.meta), "summary": _wire_summary(record.summary)}


def _wire_run(run: RuntimeRun) -> Dict[str, Any]:
    return {
        "startedAt": run.started_at,
        "stoppedAt": run.stopped_at,
        "totalScans": run.total_scans,
        "pagesCount": run.pages_count,
        "dataset": {origin: [_wire_record(r) for r in records] for origin, records in run.dataset.items()},
    }


def _wire_totals(totals: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "totalScans": totals["total_scans"],
        "pagesCount": totals["pages_count"],
        "startedAt": totals["started_at"],
    }


def _wire_status(status: Mapping[str, Any]) -> Dict[str, Any]:
    return {"active": status["active"], **_wire_totals(status)}


def _wire_stop(result: StopResult) -> Dict[str, Any]:
    if not result.ok:
        return {"ok": False, "error": result.error}
    return {"ok": True, "key": result.key, "run": _wire_run(result.run) if result.run else None}


class _Relay:
    """Subscriber turning engine hook calls into outbound event messages."""

    def __init__(self, facade: ScanFacade) -> None:
        self._facade = facade

    def on_scan_complete(self, summary: StructuralSummary) -> None:
        self._facade.broadcast({"type": "scanComplete", "summary": _wire_summary(summary)})

    def on_scan_error(self, reason: str) -> None:
        self._facade.broadcast({"type": "scanError", "reason": reason})

    def on_update(self, origin: Optional[str], totals: Mapping[str, Any]) -> None:
        self._facade.broadcast({"type": "runtimeUpdate", "origin": origin, "totals": _wire_totals(totals)})

    def on_complete(self, result: StopResult) -> None:
        self._facade.broadcast(
            {"type": "runtimeComplete", "key": result.key, "run": _wire_run(result.run) if result.run else None}
        )


class ScanFacade:
    """Stateless dispatcher in front of one :class:`ScanEngine`."""

    def __init__(self, engine: ScanEngine, send: Optional[Send] = None) -> None:
        self.engine = engine
        self._send = send
        self._tasks: Set[asyncio.Task[Any]] = set()
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Awaitable[Any]]] = {
            "startOneTime": self._start_one_time,
            "startRuntime": self._start_runtime,
            "stopRuntime": self._stop_runtime,
            "getStatus": self._get_status,
            "listDurable": self._list_durable,
            "listRuns": self._list_runs,
            "getLastRun": self._get_last_run,
            "getSessionResult": self._get_session_result,
            "getSessionMap": self._get_session_map,
        }
        if send is not None:
            engine.registry.subscribe(_Relay(self))

    # subscriptions -------------------------------------------------------------

    def subscribe(self, subscriber: Any) -> Callable[[], None]:
        return self.engine.registry.subscribe(subscriber)

    def unsubscribe(self, subscriber: Any) -> None:
        self.engine.registry.unsubscribe(subscriber)

    def broadcast(self, message: Dict[str, Any]) -> None:
        """Sends *message* out; delivery failures are logged, never raised."""
        if self._send is None:
            return
        try:
            result = self._send(message)
        except Exception as exc:
            log_swallowed(exc, f"send({message.get('type')})")
            return
        if inspect.isawaitable(result):
            self._track(self._deliver(result, message.get("type")))

    @staticmethod
    async def _deliver(pending: Awaitable[None], kind: Any) -> None:
        try:
            await pending
        except Exception as exc:
            log_swallowed(exc, f"send({kind})")

    def _track(self, coro: Awaitable[Any]) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Waits for background scans and outbound messages started by this facade."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # dispatch --------------------------------------------------------------------

    async def handle(self, message: Mapping[str, Any]) -> Any:
        """Dispatches one command; unknown types are logged and answered with ``None``."""
        kind = message.get("type") if isinstance(message, Mapping) else None
        handler = self._handlers.get(kind) if isinstance(kind, str) else None
        if handler is None:
            logger.warning("Unknown command type: %r", kind)
            return None
        logger.debug("Received command %s", kind)
        return await handler(message)

    async def _start_one_time(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        surface_id: Optional[SurfaceId] = message.get("surfaceId")
        if surface_id is None:
            reason = "startOneTime requires a surfaceId."
            self.broadcast({"type": "scanError", "reason": reason})
            return {"status": "error", "reason": reason}
        self._track(self._run_one_time(surface_id))
        return {"status": "started", "surfaceId": surface_id}

    async def _run_one_time(self, surface_id: SurfaceId) -> None:
        try:
            await self.engine.run_one_time_scan(surface_id)
        except ScoutError as err:
            # subscribers already got it as scanError
            logger.debug("startOneTime for surface %s ended with %s", surface_id, type(err).__name__)

    async def _start_runtime(self, _message: Mapping[str, Any]) -> Dict[str, Any]:
        started = await self.engine.start_runtime()
        return {"ok": started, **_wire_status(self.engine.status())}

    async def _stop_runtime(self, _message: Mapping[str, Any]) -> Dict[str, Any]:
        return _wire_stop(await self.engine.stop_runtime())

    async def _get_status(self, _message: Mapping[str, Any]) -> Dict[str, Any]:
        return _wire_status(self.engine.status())

    async def _list_durable(self, _message: Mapping[str, Any]) -> list:
        return [{"key": key, "record": _wire_record(record)} for key, record in await self.engine.list_archive()]

    async def _list_runs(self, _message: Mapping[str, Any]) -> list:
        return [{"key": key, "run": _wire_run(run)} for key, run in await self.engine.list_runs()]

    async def _get_last_run(self, _message: Mapping[str, Any]) -> Dict[str, Any]:
        key, run = await self.engine.last_run()
        return {"key": key, "run": _wire_run(run) if run else None}

    async def _get_session_result(self, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        record = await self.engine.session_result(message.get("surfaceId"))
        return _wire_record(record) if record else None

    async def _get_session_map(self, _message: Mapping[str, Any]) -> Dict[str, Any]:
        return {sid: _wire_record(record) for sid, record in (await self.engine.session_map()).items()}
