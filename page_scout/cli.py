# === FILE: page_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа PageScout через командную строку.

Команды:
  scan URL      Разовое сканирование страницы, вывод/сохранение сводки
  watch URL...  Runtime-сканирование открытых страниц в течение --duration секунд
  archive       Список сохранённых разовых сканирований (новые первыми)
  runs          Список завершённых runtime-запусков (новые первыми)
  config        Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Пример:
  page-scout scan https://example.com --json scan.json --pretty
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Sequence, Tuple

import click

from page_scout import __version__
from page_scout.config import ScoutConfig, load_config
from page_scout.engine import ScanEngine
from page_scout.errors import ScoutError
from page_scout.host import HttpSurfaceHost
from page_scout.logger import DEFAULT_FORMAT, init_logging
from page_scout.models import RuntimeRun, ScanRecord, StopResult
from page_scout.registry import Subscriber
from page_scout.report.html_report import render_html
from page_scout.report.json_report import render_json, to_jsonable
from page_scout.storage import JsonFileStore, MemoryStore, ResultStore

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def build_store(cfg: ScoutConfig) -> ResultStore:
    return ResultStore(durable=JsonFileStore(cfg.durable_path), session=MemoryStore())


async def run_one_time(cfg: ScoutConfig, url: str) -> ScanRecord:
    """Открывает URL как поверхность, сканирует её и возвращает сохранённую запись."""
    async with HttpSurfaceHost(cfg) as host:
        engine = ScanEngine(host, build_store(cfg), config=cfg)
        surface = await host.open(url)
        await engine.run_one_time_scan(surface.id)
    # выход из контекста дожидается записи результата во все хранилища
    record = await engine.session_result(surface.id)
    if record is None:
        raise ScoutError("Scan finished but no record was stored.")
    return record


async def run_watch(cfg: ScoutConfig, urls: Sequence[str], duration: float) -> StopResult:
    """Runtime-сканирование: каждая открытая страница попадает в набор данных сессии."""
    def on_update(origin, totals):
        if origin is not None:
            click.echo(f"[{totals['total_scans']}] {origin} ({totals['pages_count']} pages)")

    async with HttpSurfaceHost(cfg) as host:
        engine = ScanEngine(host, build_store(cfg), config=cfg)
        engine.registry.subscribe(Subscriber(on_update=on_update))
        await engine.start_runtime()
        for url in urls:
            await host.open(url)
        await asyncio.sleep(duration)
        return await engine.stop_runtime()


async def list_archive(cfg: ScoutConfig) -> List[Tuple[str, ScanRecord]]:
    return await build_store(cfg).list_durable()


async def list_runs(cfg: ScoutConfig) -> List[Tuple[str, RuntimeRun]]:
    return await build_store(cfg).list_runs()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='PageScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд PageScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('scan', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-сводку в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с шаблоном report.html.j2 (по умолчанию встроенный)'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.option(
    '--timeout', 'scan_timeout',
    type=float,
    default=None,
    help='Дедлайн ответа страницы (секунд), override scan_timeout'
)
@click.pass_context
def scan(ctx, url, json_output, html_output, template_dir, pretty, scan_timeout):
    """Разовое сканирование одной страницы."""
    cfg = ctx.obj['config']
    if scan_timeout:
        cfg = cfg.model_copy(update={'scan_timeout': scan_timeout})
    try:
        record = asyncio.run(run_one_time(cfg, url))
    except ScoutError as e:
        print_error(f'Сканирование не удалось: {e.reason}')
    except Exception as e:
        print_error(f'Ошибка при сканировании: {e}')

    if not json_output and not html_output:
        click.echo(json.dumps(to_jsonable(record), ensure_ascii=False, indent=2 if pretty else None))
        return

    if json_output:
        try:
            click.echo(f'JSON report: {render_json(record, json_output, pretty=pretty)}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            click.echo(f'HTML report: {render_html(record, template_dir, html_output)}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('watch', context_settings=CONTEXT_SETTINGS)
@click.argument('urls', nargs=-1, required=True)
@click.option('--duration', '-d', type=float, default=10.0, show_default=True,
              help='Сколько секунд держать runtime-сканирование')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить завершённый запуск в JSON'
)
@click.pass_context
def watch(ctx, urls, duration, json_output):
    """Runtime-сканирование набора страниц."""
    cfg = ctx.obj['config']
    try:
        result = asyncio.run(run_watch(cfg, urls, duration))
    except Exception as e:
        print_error(f'Ошибка runtime-сканирования: {e}')
    if not result.ok:
        print_error(result.error or 'Runtime-сканирование не завершено')
    run = result.run
    click.echo(f'{result.key}: {run.total_scans} scans, {run.pages_count} pages')
    if json_output:
        click.echo(f'JSON report: {render_json(result, json_output)}')


@cli.command('archive', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def archive(ctx):
    """Список разовых сканирований из долговременного хранилища."""
    entries = asyncio.run(list_archive(ctx.obj['config']))
    if not entries:
        click.echo('Архив пуст')
        return
    for key, record in entries:
        click.echo(f'{key}\t{record.meta.url or "-"}\t{record.meta.title or ""}')


@cli.command('runs', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def runs(ctx):
    """Список завершённых runtime-запусков."""
    entries = asyncio.run(list_runs(ctx.obj['config']))
    if not entries:
        click.echo('Нет сохранённых запусков')
        return
    for key, run in entries:
        click.echo(f'{key}\t{run.total_scans} scans\t{run.pages_count} pages')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
