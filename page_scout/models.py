# page_scout/models.py
"""
Data models for PageScout: provenance, scan records, runtime runs and the
raw-markup events posted back by the extraction routine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from page_scout.extractor import StructuralSummary

SurfaceId = Union[int, str]


class ScanKind(str, Enum):
    """Which extraction routine produced a raw-markup event."""

    ONE_TIME = "oneTime"
    RUNTIME = "runtime"


@dataclass(slots=True, frozen=True)
class Surface:
    """An open, addressable page the host can inject into."""

    id: SurfaceId
    url: Optional[str] = None
    title: Optional[str] = None


class RawMarkupEvent(BaseModel):
    """Inbound event from an extraction routine; camelCase aliases match the wire format."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: ScanKind
    markup: str
    surface_id: Optional[SurfaceId] = Field(None, alias="surfaceId")
    url: Optional[str] = None
    title: Optional[str] = None
    timestamp: Optional[int] = None


@dataclass(slots=True, frozen=True)
class ScanMeta:
    """Provenance of one extraction."""

    timestamp: int
    surface_id: Optional[SurfaceId] = None
    url: Optional[str] = None
    title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "surface_id": self.surface_id,
            "url": self.url,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScanMeta:
        return cls(
            timestamp=int(data["timestamp"]),
            surface_id=data.get("surface_id"),
            url=data.get("url"),
            title=data.get("title"),
        )


@dataclass(slots=True, frozen=True)
class ScanRecord:
    """The atomic unit persisted and transmitted: ``{meta, summary}``."""

    meta: ScanMeta
    summary: StructuralSummary

    def to_dict(self) -> Dict[str, Any]:
        return {"meta": self.meta.to_dict(), "summary": self.summary}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ScanRecord:
        return cls(meta=ScanMeta.from_dict(data["meta"]), summary=data["summary"])


@dataclass(slots=True, frozen=True)
class RuntimeRun:
    """Finalized runtime session as written to the durable tier."""

    started_at: int
    stopped_at: int
    total_scans: int
    pages_count: int
    dataset: Dict[str, List[ScanRecord]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at,
            "stopped_at": self.stopped_at,
            "total_scans": self.total_scans,
            "pages_count": self.pages_count,
            "dataset": {
                origin: [r.to_dict() for r in records] for origin, records in self.dataset.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RuntimeRun:
        return cls(
            started_at=int(data["started_at"]),
            stopped_at=int(data["stopped_at"]),
            total_scans=int(data["total_scans"]),
            pages_count=int(data["pages_count"]),
            dataset={
                origin: [ScanRecord.from_dict(r) for r in records]
                for origin, records in data.get("dataset", {}).items()
            },
        )


@dataclass(slots=True, frozen=True)
class StopResult:
    """Outcome of ``ScanEngine.stop_runtime``."""

    ok: bool
    key: Optional[str] = None
    run: Optional[RuntimeRun] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.ok:
            return {"ok": False, "error": self.error}
        return {"ok": True, "key": self.key, "run": self.run.to_dict() if self.run else None}


__all__ = [
    "SurfaceId",
    "ScanKind",
    "Surface",
    "RawMarkupEvent",
    "ScanMeta",
    "ScanRecord",
    "RuntimeRun",
    "StopResult",
]
