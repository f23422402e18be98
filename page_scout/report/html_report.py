# File: page_scout/report/html_report.py
"""page_scout.report.html_report: HTML-отчёт по одной структурной сводке (Jinja2)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from page_scout.models import ScanRecord

DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "report.html.j2"


def render_html(
    record: ScanRecord,
    template_dir: Optional[Union[Path, str]],
    output_path: Union[Path, str],
) -> Path:
    """Рендерит HTML-отчёт из шаблона и сохраняет его по указанному пути.

    Args:
        record: ScanRecord (meta + summary).
        template_dir: директория с ``report.html.j2``; при None берётся встроенный шаблон.
        output_path: путь к итоговому HTML-файлу.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir else DEFAULT_TEMPLATE_DIR
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(TEMPLATE_NAME)

    summary = record.summary
    context: dict[str, Any] = {
        "meta": record.meta,
        "head": summary["head"],
        "body": summary["body"],
        "stats": summary["stats"],
    }

    output_path.write_text(template.render(**context), encoding="utf-8")
    return output_path
