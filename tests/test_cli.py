# File: tests/test_cli.py
"""Тесты для CLI (`page_scout.cli`) с использованием click.testing.CliRunner.
Сетевые операции подменяются через monkeypatch.
"""
import json

import pytest
import page_scout.cli as cli_module
from click.testing import CliRunner
from page_scout.cli import cli
from page_scout.errors import InjectionDenied
from page_scout.extractor import extract
from page_scout.logger import configure
from page_scout.models import RuntimeRun, ScanMeta, ScanRecord, StopResult


@pytest.fixture()
def record() -> ScanRecord:
    meta = ScanMeta(timestamp=1700000000000, surface_id=1, url="https://example.com/", title="T")
    return ScanRecord(meta=meta, summary=extract("<html><head><title>T</title></head><body><h1>A</h1></body></html>"))


@pytest.fixture()
def runner(tmp_path, monkeypatch) -> CliRunner:
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI переустанавливает обработчики логгера на поток CliRunner; возвращаем stdout."""
    yield
    configure()


def test_version_option(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "PageScout" in result.output


def test_show_config(runner, tmp_path):
    cfg_file = tmp_path / "custom.json"
    cfg_file.write_text(json.dumps({"scan_timeout": 3.0, "user_agent": "Agent/1.0"}), encoding="utf-8")
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0, result.output
    shown = json.loads(result.output)
    assert shown["scan_timeout"] == 3.0
    assert shown["user_agent"] == "Agent/1.0"


def test_bad_config_exits(runner, tmp_path):
    cfg_file = tmp_path / "bad.yaml"
    cfg_file.write_text("scan_timeout: nope", encoding="utf-8")
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 1


def test_scan_prints_record(runner, monkeypatch, record):
    seen = {}

    async def fake_run_one_time(cfg, url):
        seen["url"] = url
        seen["timeout"] = cfg.scan_timeout
        return record

    monkeypatch.setattr(cli_module, "run_one_time", fake_run_one_time)
    result = runner.invoke(cli, ["scan", "https://example.com/", "--timeout", "2.5"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["summary"]["head"]["title"] == "T"
    assert data["meta"]["url"] == "https://example.com/"
    assert seen == {"url": "https://example.com/", "timeout": 2.5}


def test_scan_writes_reports(runner, monkeypatch, record, tmp_path):
    async def fake_run_one_time(cfg, url):
        return record

    monkeypatch.setattr(cli_module, "run_one_time", fake_run_one_time)
    json_path = tmp_path / "out" / "scan.json"
    html_path = tmp_path / "out" / "scan.html"
    result = runner.invoke(cli, ["scan", "https://example.com/", "--json", str(json_path), "--html", str(html_path)])
    assert result.exit_code == 0, result.output
    assert json.loads(json_path.read_text(encoding="utf-8"))["summary"]["body"]["headings"]["h1"] == ["A"]
    html = html_path.read_text(encoding="utf-8")
    assert "<h1>T</h1>" in html
    assert "h1: A" in html


def test_scan_failure_exit_code(runner, monkeypatch):
    async def denied(cfg, url):
        raise InjectionDenied()

    monkeypatch.setattr(cli_module, "run_one_time", denied)
    result = runner.invoke(cli, ["scan", "about:blank"])
    assert result.exit_code == 1
    assert InjectionDenied.default_reason in result.output


def test_watch_reports_totals(runner, monkeypatch, record):
    async def fake_watch(cfg, urls, duration):
        assert list(urls) == ["https://a/", "https://b/"]
        assert duration == 0.5
        run = RuntimeRun(1, 2, 2, 2, {"https://a/": [record], "https://b/": [record]})
        return StopResult(ok=True, key="run:2", run=run)

    monkeypatch.setattr(cli_module, "run_watch", fake_watch)
    result = runner.invoke(cli, ["watch", "https://a/", "https://b/", "--duration", "0.5"])
    assert result.exit_code == 0, result.output
    assert "run:2: 2 scans, 2 pages" in result.output


def test_archive_and_runs(runner, monkeypatch, record):
    async def fake_archive(cfg):
        return [("archive:1700000000000", record)]

    async def fake_runs(cfg):
        return [("run:5", RuntimeRun(1, 5, 3, 2))]

    monkeypatch.setattr(cli_module, "list_archive", fake_archive)
    monkeypatch.setattr(cli_module, "list_runs", fake_runs)
    archive = runner.invoke(cli, ["archive"])
    runs = runner.invoke(cli, ["runs"])
    assert "archive:1700000000000\thttps://example.com/\tT" in archive.output
    assert "run:5\t3 scans\t2 pages" in runs.output


def test_archive_reads_durable_file(runner, tmp_path):
    result = runner.invoke(cli, ["archive"])
    assert result.exit_code == 0
    assert "Архив пуст" in result.output
