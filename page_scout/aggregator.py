# File: page_scout/aggregator.py
"""page_scout.aggregator: агрегация повторных сканирований в runtime-сессию по origin."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, TypedDict

from page_scout.models import RuntimeRun, ScanRecord


class RuntimeTotals(TypedDict):
    """Счётчики, отправляемые подписчикам в ``on_update``."""

    total_scans: int
    pages_count: int
    started_at: int


@dataclass(slots=True)
class RuntimeSession:
    """Набор данных активного runtime-сканирования.

    ``total_scans`` всегда равен сумме длин списков в ``dataset``: оба
    меняются только в :meth:`append`.
    """

    started_at: int
    dataset: Dict[str, List[ScanRecord]] = field(default_factory=dict)
    total_scans: int = 0
    stopped_at: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.stopped_at is None

    @property
    def pages_count(self) -> int:
        return len(self.dataset)

    def append(self, origin: str, record: ScanRecord) -> RuntimeTotals:
        """Добавляет запись в ``dataset[origin]`` и возвращает новые счётчики."""
        if not self.active:
            raise RuntimeError("Runtime session already finalized")
        self.dataset.setdefault(origin, []).append(record)
        self.total_scans += 1
        return self.totals()

    def totals(self) -> RuntimeTotals:
        return {
            "total_scans": self.total_scans,
            "pages_count": self.pages_count,
            "started_at": self.started_at,
        }

    def finalize(self, stopped_at: int) -> RuntimeRun:
        """Замораживает сессию и возвращает RuntimeRun; повторный вызов приводит к ошибке."""
        if not self.active:
            raise RuntimeError("Runtime session already finalized")
        self.stopped_at = stopped_at
        return RuntimeRun(
            started_at=self.started_at,
            stopped_at=stopped_at,
            total_scans=self.total_scans,
            pages_count=self.pages_count,
            dataset={origin: list(records) for origin, records in self.dataset.items()},
        )


__all__ = ["RuntimeSession", "RuntimeTotals"]
