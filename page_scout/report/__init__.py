"""page_scout.report: экспорт сводок и runtime-запусков в JSON и HTML."""

from __future__ import annotations

from page_scout.report.html_report import render_html
from page_scout.report.json_report import render_json, to_jsonable

__all__ = ["render_json", "render_html", "to_jsonable"]
