# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError
from page_scout.config import ScoutConfig, load_config


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,suffix,expect_exc",
    [
        ("scan_timeout: 2.5\nuser_agent: Probe/2", ".yaml", None),
        (json.dumps({"scan_timeout": 2.5, "user_agent": "Probe/2"}), ".json", None),
        ("scan_timeout: -1", ".yaml", ValidationError),
        ("unknown_option: 1", ".yml", ValidationError),
        ("::invalid yaml", ".yaml", TypeError),
        ("key: [unclosed", ".yaml", ValueError),
        ("[1, 2]", ".json", TypeError),
        ("{not json", ".json", ValueError),
        ("scan_timeout = 1", ".toml", ValueError),
    ],
)
def test_load_config_variants(tmp_path, content, suffix, expect_exc):
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            load_config(cfg_path)
    else:
        cfg = load_config(cfg_path)
        assert isinstance(cfg, ScoutConfig)
        assert cfg.scan_timeout == 2.5
        assert cfg.user_agent == "Probe/2"


def test_defaults_when_no_default_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = load_config(None)
    assert cfg == ScoutConfig()
    assert cfg.scan_timeout == 8.0
    assert cfg.injectable_schemes == ["http", "https"]


def test_default_file_is_used(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text("scan_timeout: 1.5\n", encoding="utf-8")
    assert load_config(None).scan_timeout == 1.5


def test_explicit_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_schemes_normalized():
    cfg = ScoutConfig(injectable_schemes=["HTTPS:", "Http"])
    assert cfg.injectable_schemes == ["https", "http"]


def test_config_is_frozen():
    cfg = ScoutConfig()
    with pytest.raises(ValidationError):
        cfg.scan_timeout = 1.0
