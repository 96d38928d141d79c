"""Typer CLI entrypoint for outage-herald."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from .chat.certs import load_certificate_bundle
from .config import ConfigLocator, ConfigRepository
from .engine import ADAPTERS, FeedFetcher, SourceDescriptor, resolve_sources
from .errors import HeraldError
from .logging_conf import LogPaths, available_source_logs, configure_logging, tail_log
from .orchestrator import run_herald

app = typer.Typer(
    help="outage-herald command line",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Inspect log files",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    verbose: bool = False

    @property
    def logs_dir(self) -> Path:
        return self.repository.locator.logs_dir


def build_state(verbose: bool, config_path: Optional[Path] = None) -> AppState:
    if config_path:
        # An explicit config file makes its directory the herald home.
        locator = ConfigLocator(project_root=config_path.expanduser().resolve().parent)
        repository = ConfigRepository(locator, path=config_path)
    else:
        repository = ConfigRepository()
    configure_logging(repository.locator.logs_dir, verbose=verbose)
    return AppState(repository=repository, verbose=verbose)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _resolve_or_exit(state: AppState) -> list[SourceDescriptor]:
    try:
        return resolve_sources(state.repository.load().feeds.rss)
    except HeraldError as exc:
        console.print(f"Configuration error: {exc}", style="red")
        raise typer.Exit(code=2) from exc


def _render_sources_table(sources: Sequence[SourceDescriptor]) -> Table:
    table = Table(title=f"Watched feeds · {len(sources)}", box=box.SIMPLE_HEAD)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Adapter", style="magenta")
    table.add_column("URL", style="green", overflow="fold")
    for source in sources:
        table.add_row(source.source_id, source.adapter.label, source.url)
    return table


app.add_typer(log_app, name="log", help="Inspect log files")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging", is_flag=True),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML/JSON config file."),
) -> None:
    ctx.obj = build_state(verbose, config)


@app.command("run", help="Connect, join the channel and start watching feeds.")
def run(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    _resolve_or_exit(state)
    try:
        run_herald(state.repository)
    except HeraldError as exc:
        console.print(f"Startup failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc


@app.command("sources", help="List configured feeds.")
def sources(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    descriptors = _resolve_or_exit(state)
    if not descriptors:
        console.print(
            f"No feeds configured. Known sources: {', '.join(sorted(ADAPTERS))}", style="yellow"
        )
        raise typer.Exit(code=0)
    console.print(_render_sources_table(descriptors))


async def _preview(descriptor: SourceDescriptor, timeout: float) -> list[str]:
    fetcher = FeedFetcher(timeout=timeout)
    try:
        document = await fetcher.fetch(descriptor.url)
    finally:
        await fetcher.aclose()
    batch = descriptor.adapter.normalize(document)
    return [descriptor.adapter.render(item) for item in batch.items]


@app.command("preview", help="Fetch one feed and print the lines it would announce.")
def preview(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source identifier, e.g. aws."),
    limit: int = typer.Option(10, "--limit", help="Show at most N items."),
) -> None:
    state = _get_state(ctx)
    descriptors = {d.source_id: d for d in _resolve_or_exit(state)}
    descriptor = descriptors.get(source)
    if descriptor is None:
        console.print(f"Source '{source}' is not configured.", style="red")
        raise typer.Exit(code=1)
    try:
        lines = asyncio.run(_preview(descriptor, state.repository.load().fetch_timeout_seconds))
    except Exception as exc:  # noqa: BLE001
        console.print(f"Fetch failed: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    if not lines:
        console.print("Feed has no items.", style="dim")
        return
    for line in lines[:limit]:
        console.print(line, markup=False, highlight=False, soft_wrap=True)


@app.command("cert-check", help="Validate a PEM bundle (private key first, then certificate).")
def cert_check(path: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    try:
        bundle = load_certificate_bundle(path)
    except HeraldError as exc:
        console.print(f"Invalid bundle: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    console.print(
        f"OK: private key ({len(bundle.private_key)} chars), "
        f"certificate ({len(bundle.certificate)} chars)",
        style="green",
    )


@log_app.command("list", help="List per-source log files.")
def log_list(ctx: typer.Context) -> None:
    logs = available_source_logs(_get_state(ctx).logs_dir)
    if not logs:
        console.print("No source logs yet.", style="dim")
        return
    table = Table(box=box.SIMPLE_HEAD)
    table.add_column("File", style="green")
    for path in logs:
        table.add_row(path.name)
    console.print(table)


@log_app.command("show", help="Show the tail of the global or a source log.")
def log_show(
    ctx: typer.Context,
    name: Optional[str] = typer.Option(None, "--source", help="Source identifier (global log when empty)."),
    tail: int = typer.Option(100, "--tail", help="Show the last N lines."),
) -> None:
    paths = LogPaths(_get_state(ctx).logs_dir)
    path = paths.source(name) if name else paths.herald
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{'Source' if name else 'Global'} log · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False, soft_wrap=True)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
