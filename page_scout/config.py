# === FILE: page_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации PageScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ScoutConfig(BaseModel):
    """Конфигурация движка сканирования и хранилищ."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    scan_timeout: float = Field(8.0, gt=0, description="Дедлайн разового сканирования (секунд).")
    request_timeout: float = Field(10.0, gt=0, description="Таймаут HTTP-запроса хоста (секунд).")
    user_agent: str = Field("PageScout/1.0", min_length=1, description="Заголовок User-Agent.")
    durable_path: Path = Field(
        Path("page_scout_archive.json"), description="Файл долговременного хранилища."
    )
    injectable_schemes: List[str] = Field(
        default_factory=lambda: ["http", "https"],
        min_length=1,
        description="Схемы адресов, в которые разрешена инъекция.",
    )
    inline_script_preview: int = Field(
        50, ge=0, description="Сколько символов inline-скрипта сохранять в сводке."
    )

    @field_validator("injectable_schemes", mode="after")
    def _lower_schemes(cls, v: List[str]) -> List[str]:
        return [s.lower().rstrip(":/") for s in v]


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ScoutConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ScoutConfig.
    Без пути используется configs/default.yaml, а если его нет, то значения по умолчанию.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ScoutConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return ScoutConfig(**data)
    except ValidationError:
        raise


__all__ = ["ScoutConfig", "load_config"]
