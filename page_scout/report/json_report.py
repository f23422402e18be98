# page_scout/report/json_report.py

"""
Генерация JSON-отчёта для PageScout.

Сериализация ScanRecord, RuntimeRun или списка архива в файл.
"""
import json
from pathlib import Path
from typing import Any


def to_jsonable(data: Any) -> Any:
    """Приводит записи PageScout (объекты с to_dict) и их списки к JSON-совместимому виду."""
    if hasattr(data, "to_dict"):
        return data.to_dict()
    if isinstance(data, dict):
        return {str(k): to_jsonable(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(v) for v in data]
    return data


def render_json(data: Any, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет данные в формате JSON по указанному пути.

    :param data: ScanRecord, RuntimeRun, сводка или список таких объектов
    :param output_path: путь к JSON-файлу
    :param pretty: отступ 2 пробела
    :return: Path сохранённого файла

    Пример:
    ```python
    from page_scout.report.json_report import render_json
    report_path = render_json(record, 'reports/scan.json')
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(to_jsonable(data), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
