"""Typer CLI entrypoint for subharvest."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import NoReturn, Optional, Sequence

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import ConfigRepository, GlobalConfig, build_fetch_options
from .engine import Fetcher
from .errors import ConfigurationError, SubharvestError
from .infra import SubscriptionStore
from .logging_conf import configure_logging, default_log_path, tail_log
from .models import BatchResult, Subscription, SubscriptionConfig
from .orchestrator import FetchOrchestrator

app = typer.Typer(
    help="subharvest: collect proxy links from subscription sources",
    no_args_is_help=True,
    rich_markup_mode=None,
)
subs_app = typer.Typer(
    name="subs",
    help="Subscription management commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)
log_app = typer.Typer(
    name="log",
    help="Log viewing commands",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

URL_DISPLAY_WIDTH = 50
_TRUE_VALUES = {"true", "1"}
_FALSE_VALUES = {"false", "0"}


@dataclass
class AppState:
    repository: ConfigRepository
    global_config: GlobalConfig
    store: SubscriptionStore
    fetcher: Fetcher
    orchestrator: FetchOrchestrator


def build_state(verbose: bool) -> AppState:
    configure_logging(verbose=verbose)
    repository = ConfigRepository()
    global_config = repository.load_global_config()
    store = SubscriptionStore(repository.database_path())
    fetcher = Fetcher(
        timeout=global_config.request_timeout,
        method=global_config.request_method,
    )
    orchestrator = FetchOrchestrator(store, fetcher, verbose=verbose)
    return AppState(
        repository=repository,
        global_config=global_config,
        store=store,
        fetcher=fetcher,
        orchestrator=orchestrator,
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _fail(message: str) -> NoReturn:
    console.print(escape(message), style="red")
    raise typer.Exit(code=1)


def _truncate(text: str, width: int = URL_DISPLAY_WIDTH) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def _format_time(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%Y-%m-%d %H:%M:%S")


def _parse_enabled(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise typer.BadParameter("--enabled must be one of true, false, 1, 0")


def _render_subscriptions_table(
    subscriptions: Sequence[Subscription], verbose: bool = False
) -> Table:
    table = Table(title="Subscriptions", box=box.SIMPLE_HEAVY)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("URL", overflow="fold")
    table.add_column("REMARK")
    table.add_column("ENABLED")
    table.add_column("LAST FETCHED")
    if verbose:
        table.add_column("USER AGENT", overflow="fold")
    for sub in subscriptions:
        row = [
            str(sub.id),
            escape(sub.url if verbose else _truncate(sub.url)),
            escape(sub.remark or ""),
            "yes" if sub.enabled else "no",
            _format_time(sub.last_fetched_at),
        ]
        if verbose:
            row.append(escape(sub.user_agent or ""))
        table.add_row(*row)
    return table


def _render_configs_table(configs: Sequence[SubscriptionConfig]) -> Table:
    table = Table(title="Configs", box=box.SIMPLE_HEAVY)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("SUB ID", justify="right")
    table.add_column("PROTOCOL", style="magenta")
    table.add_column("REMARK", overflow="fold")
    table.add_column("LAST SEEN")
    for config in configs:
        table.add_row(
            str(config.id),
            str(config.subscription_id) if config.subscription_id is not None else "N/A",
            config.protocol or "unknown",
            escape(config.remark or "N/A"),
            _format_time(config.last_seen_at),
        )
    return table


def _render_batch_table(result: BatchResult) -> Table:
    table = Table(title="Fetch results", box=box.SIMPLE_HEAVY)
    table.add_column("SOURCE", overflow="fold")
    table.add_column("LINKS", justify="right")
    table.add_column("CONFIGS", justify="right")
    table.add_column("STATUS")
    for outcome in result.outcomes:
        status = "ok" if outcome.ok else escape(str(outcome.error))
        table.add_row(
            escape(_truncate(outcome.label)),
            str(outcome.raw_count),
            str(len(outcome.configs)),
            status,
        )
    table.add_row(
        "Total",
        str(result.total_links),
        str(result.total_configs),
        f"{result.failed_sources} failed",
    )
    return table


app.add_typer(subs_app, name="subs", help="Manage and fetch subscriptions")
app.add_typer(log_app, name="log", help="Inspect the application log")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    try:
        ctx.obj = build_state(verbose)
    except SubharvestError as exc:
        _fail(str(exc))


@subs_app.command("fetch", help="Fetch subscriptions and store their configs.")
def subs_fetch(
    ctx: typer.Context,
    subscription_id: Optional[int] = typer.Option(None, "--id", help="Fetch one stored subscription."),
    url: Optional[str] = typer.Option(None, "--url", help="Fetch an ad-hoc subscription URL."),
    fetch_all: bool = typer.Option(False, "--all", help="Fetch every enabled subscription."),
    file_input: Optional[Path] = typer.Option(None, "--file", help="Fetch URLs listed in a file."),
    user_agent: Optional[str] = typer.Option(None, "--useragent", "-a", help="User agent override."),
    proxy: Optional[str] = typer.Option(None, "--proxy", "-p", help="Outbound proxy URL."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Concurrent fetches (1-20)."),
    output: Optional[str] = typer.Option(None, "--out", "-o", help="Write saved links to this file."),
) -> None:
    state = _get_state(ctx)
    config = state.global_config
    try:
        options = build_fetch_options(
            subscription_id=subscription_id,
            url=url,
            fetch_all=fetch_all,
            file_input=file_input,
            user_agent=user_agent if user_agent is not None else config.user_agent,
            proxy=proxy if proxy is not None else config.proxy,
            workers=workers if workers is not None else config.default_workers,
            output_path=output if output is not None else config.default_output,
        )
    except ConfigurationError as exc:
        _fail(f"Invalid options: {exc}")

    try:
        result = state.orchestrator.run(options)
    except SubharvestError as exc:
        _fail(str(exc))
    finally:
        state.fetcher.close()

    if result.total_sources == 0:
        console.print("No enabled subscriptions found.", style="yellow")
        return
    console.print(_render_batch_table(result))
    console.print(
        f"All done: {result.total_links} links fetched, "
        f"{result.total_configs} configs saved, {result.failed_sources} failed"
    )
    if result.output_path:
        console.print(f"Saved links written to {escape(result.output_path)}", style="green")
    if not result.ok:
        _fail(f"{result.failed_sources} out of {result.total_sources} subscriptions failed to fetch")


@subs_app.command("add", help="Register a new subscription.")
def subs_add(
    ctx: typer.Context,
    url: str = typer.Option(..., "--url", help="Subscription URL."),
    remark: Optional[str] = typer.Option(None, "--remark", help="Display name."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="Custom user agent."),
) -> None:
    state = _get_state(ctx)
    try:
        subscription = state.store.add_subscription(url, remark=remark, user_agent=user_agent)
    except SubharvestError as exc:
        _fail(str(exc))
    console.print(f"Subscription added with ID {subscription.id}", style="green")


@subs_app.command("show", help="List registered subscriptions.")
def subs_show(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show full URLs and user agents."),
) -> None:
    state = _get_state(ctx)
    try:
        subscriptions = state.store.list_subscriptions()
    except SubharvestError as exc:
        _fail(str(exc))
    if not subscriptions:
        console.print("No subscriptions found. Use `subharvest subs add` to create one.", style="yellow")
        return
    console.print(_render_subscriptions_table(subscriptions, verbose=verbose))


@subs_app.command("rm", help="Delete a subscription and its configs.")
def subs_rm(
    ctx: typer.Context,
    subscription_id: int = typer.Argument(..., help="Subscription ID."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    state = _get_state(ctx)
    try:
        subscription = state.store.get_subscription(subscription_id)
        config_count = state.store.count_configs(subscription_id)
    except SubharvestError as exc:
        _fail(str(exc))
    if not yes:
        confirm = typer.confirm(
            f"Delete subscription {subscription.label} and its {config_count} configs?",
            default=False,
        )
        if not confirm:
            console.print("Deletion cancelled.", style="yellow")
            raise typer.Exit(code=0)
    try:
        state.store.delete_subscription(subscription_id)
    except SubharvestError as exc:
        _fail(str(exc))
    console.print(f"Subscription {subscription_id} deleted.", style="green")


@subs_app.command("update", help="Change fields of a subscription.")
def subs_update(
    ctx: typer.Context,
    subscription_id: int = typer.Option(..., "--id", help="Subscription ID."),
    url: Optional[str] = typer.Option(None, "--url", help="New URL."),
    remark: Optional[str] = typer.Option(None, "--remark", help="New remark (empty clears it)."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="New user agent (empty clears it)."),
    enabled: Optional[str] = typer.Option(None, "--enabled", help="true, false, 1 or 0."),
) -> None:
    state = _get_state(ctx)
    changes: dict[str, object] = {}
    if url is not None:
        changes["url"] = url
    if remark is not None:
        changes["remark"] = remark
    if user_agent is not None:
        changes["user_agent"] = user_agent
    parsed_enabled = _parse_enabled(enabled)
    if parsed_enabled is not None:
        changes["enabled"] = parsed_enabled
    if not changes:
        _fail("At least one of --url, --remark, --user-agent or --enabled must be given.")
    try:
        subscription = state.store.update_subscription(subscription_id, **changes)
    except SubharvestError as exc:
        _fail(str(exc))
    console.print(f"Subscription {subscription.id} updated.", style="green")


@subs_app.command("list-configs", help="List stored configs.")
def subs_list_configs(
    ctx: typer.Context,
    subscription_id: Optional[int] = typer.Option(None, "--id", help="Only configs of this subscription."),
    protocol: Optional[str] = typer.Option(None, "--protocol", help="Only configs of this protocol."),
    limit: int = typer.Option(50, "--limit", help="Maximum rows to show."),
) -> None:
    state = _get_state(ctx)
    try:
        configs = state.store.list_configs(
            subscription_id=subscription_id, protocol=protocol, limit=limit
        )
    except SubharvestError as exc:
        _fail(str(exc))
    if not configs:
        console.print("No configs found.", style="yellow")
        return
    console.print(_render_configs_table(configs))


@log_app.command("show", help="Show the most recent log lines.")
def log_show(
    tail: int = typer.Option(100, "--tail", help="Number of lines to show."),
) -> None:
    lines = tail_log(default_log_path(), tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"Application log, last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()


__all__ = ["AppState", "app", "build_state", "cli"]
