"""CLI for composing, estimating, submitting and tracking research queries."""

import asyncio
from typing import List, Optional

import typer
from pydantic import ValidationError

from .api import ResearchApiClient
from .catalog import DATA_SOURCES, LLM_PROVIDERS
from .config import CONFIG_FILE, settings
from .estimator import LLM_BASE_COST, SOURCE_BASE_COST, calculate_query_cost, estimate_query, estimate_query_duration, format_currency
from .exceptions import ResearchConsoleError
from .observability import setup_structured_logging
from .progress import CONNECTION_INTERRUPTED, ProgressConsumer, ProgressStore, StepStatus
from .query import QueryConfiguration, QueryStore, QuerySubmission, SearchDepth

app = typer.Typer(help="Compose, estimate and track research queries")
query_app = typer.Typer(help="Edit the saved query configuration")
app.add_typer(query_app, name="query")

STATUS_LABELS = {
    StepStatus.IDLE: "Pending",
    StepStatus.ACTIVE: "Running",
    StepStatus.COMPLETED: "Done",
    StepStatus.ERROR: "Failed",
}


@app.callback()
def main() -> None:
    """Research query console."""
    setup_structured_logging(settings.logging.level, settings.logging.json_output)


def _fail(message: str) -> None:
    print(f"Error: {message}")
    raise typer.Exit(code=1)


def _print_configuration(config: QueryConfiguration) -> None:
    options = config.options
    estimate = estimate_query(config)
    print(f"Query: {config.query or '(empty)'}")
    print(f"Sources: {', '.join(config.sources) or '(none)'}")
    print(f"Models: {', '.join(config.llms) or '(none)'}")
    print(f"Depth: {options.search_depth.value}")
    print(f"Max Results: {options.max_results}")
    print(f"Date Range: {options.date_from or '*'} .. {options.date_to or '*'}")
    print(f"Open Access Only: {options.open_access_only}")
    print(f"Estimated Cost: {format_currency(estimate.cost)} ({estimate.tier})")
    print(f"Estimated Duration: ~{estimate.duration_seconds} sec")


# --- Estimation ---


@app.command()
def estimate(
    sources: Optional[List[str]] = typer.Option(None, "--source", "-s", help="Source id (repeatable); defaults to saved selection"),
    llms: Optional[List[str]] = typer.Option(None, "--llm", "-l", help="Model id (repeatable); defaults to saved selection"),
    depth: Optional[SearchDepth] = typer.Option(None, "--depth", "-d", help="Search depth"),
    max_results: Optional[int] = typer.Option(None, "--max-results", "-n", help="Results per source"),
) -> None:
    """Estimate cost and duration for a query configuration."""
    saved = QueryStore().state
    selected_sources = sources if sources else list(saved.sources)
    selected_llms = llms if llms else list(saved.llms)
    selected_depth = depth or saved.options.search_depth
    results = max_results if max_results is not None else saved.options.max_results

    cost = calculate_query_cost(selected_sources, selected_llms, selected_depth, results)
    duration = estimate_query_duration(selected_depth, len(selected_sources), len(selected_llms))
    print(f"Estimated Cost: {format_currency(cost)}")
    print(f"Estimated Duration: ~{duration} sec")


@app.command()
def sources() -> None:
    """List known data sources and models with their base costs."""
    print("Data sources:")
    for source in DATA_SOURCES:
        badge = f" [{source.badge}]" if source.badge else ""
        print(f"  {source.id:<16} {source.name}{badge}: {source.description} ({format_currency(SOURCE_BASE_COST[source.id])})")
    print("Models:")
    for provider in LLM_PROVIDERS:
        badge = f" [{provider.badge}]" if provider.badge else ""
        print(f"  {provider.id:<16} {provider.name}{badge}: {provider.description}, {provider.pricing} ({format_currency(LLM_BASE_COST[provider.id])})")


# --- Query configuration ---


@query_app.command("show")
def query_show() -> None:
    """Show the saved query configuration and its estimates."""
    _print_configuration(QueryStore().state)


@query_app.command("set")
def query_set(text: str = typer.Argument(..., help="Research question")) -> None:
    """Set the query text."""
    store = QueryStore()
    store.set_query(text)
    _print_configuration(store.state)


@query_app.command("toggle-source")
def query_toggle_source(source_id: str = typer.Argument(..., help="Source id to add or remove")) -> None:
    """Add a source if missing, otherwise remove it."""
    store = QueryStore()
    store.toggle_source(source_id)
    print(f"Sources: {', '.join(store.sources) or '(none)'}")


@query_app.command("toggle-llm")
def query_toggle_llm(llm_id: str = typer.Argument(..., help="Model id to add or remove")) -> None:
    """Add a model if missing, otherwise remove it."""
    store = QueryStore()
    store.toggle_llm(llm_id)
    print(f"Models: {', '.join(store.llms) or '(none)'}")


@query_app.command("options")
def query_options(
    depth: Optional[SearchDepth] = typer.Option(None, "--depth", "-d", help="Search depth"),
    max_results: Optional[int] = typer.Option(None, "--max-results", "-n", help="Results per source"),
    date_from: Optional[str] = typer.Option(None, "--date-from", help="Earliest publication date (YYYY-MM-DD)"),
    date_to: Optional[str] = typer.Option(None, "--date-to", help="Latest publication date (YYYY-MM-DD)"),
    open_access_only: Optional[bool] = typer.Option(None, "--open-access-only/--any-access", help="Restrict to open access"),
) -> None:
    """Update search options; options not given are kept."""
    changes = {
        "search_depth": depth,
        "max_results": max_results,
        "date_from": date_from,
        "date_to": date_to,
        "open_access_only": open_access_only,
    }
    store = QueryStore()
    try:
        store.set_options({key: value for key, value in changes.items() if value is not None})
    except ValueError as e:
        _fail(str(e))
    _print_configuration(store.state)


@query_app.command("reset")
def query_reset() -> None:
    """Restore the default query configuration."""
    store = QueryStore()
    store.reset()
    _print_configuration(store.state)


# --- Runs ---


async def _track_run(run_id: str, client: ResearchApiClient, max_reconnects: int, reconnect_delay: float) -> ProgressStore:
    store = ProgressStore()
    seen: dict[str, tuple[StepStatus, str | None]] = {}

    def render(current: ProgressStore) -> None:
        for step in current.steps:
            marker = (step.status, step.detail)
            if seen.get(step.id) == marker or step.status == StepStatus.IDLE:
                continue
            seen[step.id] = marker
            detail = f": {step.detail}" if step.detail else ""
            print(f"[{STATUS_LABELS[step.status]:>7}] {step.label}{detail}  ({current.progress_percent}% complete)")

    def notice(message: str | None) -> None:
        if message:
            print(f"! {message}")

    store.subscribe(render)
    consumer = ProgressConsumer(run_id, store, client, on_notice=notice)
    consumer.start()
    attempts = 0
    try:
        while True:
            await consumer.wait()
            if consumer.connection_error != CONNECTION_INTERRUPTED or attempts >= max_reconnects:
                break
            attempts += 1
            await asyncio.sleep(reconnect_delay)
            consumer.reconnect()

        remaining = consumer.remaining_seconds()
        eta = f", ETA ~{round(remaining)}s" if remaining is not None else ""
        print(f"{store.completed_count}/{len(store.steps)} steps completed, elapsed {consumer.elapsed_seconds()}s{eta}")
    finally:
        await consumer.aclose()
    return store


@app.command()
def submit(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project to file the query under"),
    track: bool = typer.Option(False, "--track", "-t", help="Follow progress after submission"),
) -> None:
    """Validate and submit the saved query configuration."""
    config = QueryStore().state
    try:
        submission = QuerySubmission.from_configuration(config, project_id=project)
    except ValidationError as e:
        for error in e.errors(include_url=False):
            location = ".".join(str(part) for part in error["loc"]) or "query"
            print(f"  {location}: {error['msg']}")
        _fail("Query configuration is not ready for submission")

    query_estimate = estimate_query(config)

    async def _submit() -> str:
        async with ResearchApiClient() as client:
            ack = await client.execute(submission, query_estimate.cost, query_estimate.duration_seconds)
            print(f"Query launched: {ack.query_id} ({ack.status})")
            if track:
                await _track_run(ack.query_id, client, settings.tracker.max_reconnects, settings.tracker.reconnect_delay)
            return ack.query_id

    try:
        asyncio.run(_submit())
    except ResearchConsoleError as e:
        _fail(str(e))


@app.command()
def track(
    run_id: str = typer.Argument(..., help="Run (query) id to follow"),
    max_reconnects: Optional[int] = typer.Option(None, "--max-reconnects", help="Reconnect attempts after an interruption"),
) -> None:
    """Follow a run's progress until its stream closes."""
    reconnects = max_reconnects if max_reconnects is not None else settings.tracker.max_reconnects

    async def _track() -> None:
        async with ResearchApiClient() as client:
            await _track_run(run_id, client, reconnects, settings.tracker.reconnect_delay)

    asyncio.run(_track())


@app.command()
def cancel(run_id: str = typer.Argument(..., help="Run (query) id to cancel")) -> None:
    """Ask the backend to abandon a run."""

    async def _cancel():
        async with ResearchApiClient() as client:
            return await client.cancel(run_id)

    try:
        ack = asyncio.run(_cancel())
    except ResearchConsoleError as e:
        _fail(str(e))
    print(ack.message or "Query cancelled")


@app.command()
def config() -> None:
    """Show current configuration."""
    print(f"Config File: {CONFIG_FILE}")
    print(f"API Base URL: {settings.api.base_url}")
    print(f"API Timeout: {settings.api.timeout}s")
    print(f"Storage Directory: {settings.storage.get_directory()}")
    print(f"Log Level: {settings.logging.level}")
    print(f"Max Reconnects: {settings.tracker.max_reconnects}")


if __name__ == "__main__":
    app()
