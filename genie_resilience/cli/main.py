"""genie-retry CLI.

Usage:
    genie-retry schedule [OPTIONS]
    genie-retry settings
    genie-retry probe URL [OPTIONS]

Exit codes: 0=success, 1=error.
"""

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging
import math
from typing import Annotated, Optional

import httpx
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from genie_resilience.adapters.http import http_executor, send_with_retry
from genie_resilience.config import get_settings
from genie_resilience.core.errors import ConfigurationError
from genie_resilience.core.types import RetryPolicy
from genie_resilience.observability.logger import setup_logging as setup_structured_logging
from genie_resilience.observability.metrics import RetryMetrics
from genie_resilience.resilience.retry import RetryExecutor

app = typer.Typer(
    name="genie-retry",
    help="Retry/backoff toolkit for flaky backend calls",
    add_completion=False,
)

console = Console()


def setup_logging(quiet: bool = False, verbose: bool = False, json_format: bool = False) -> None:
    """Configure logging with rich handler (or JSON lines with --json)."""
    settings = get_settings()
    level = logging.WARNING if quiet else (logging.DEBUG if verbose else settings.log_level.upper())

    if json_format or settings.log_json:
        setup_structured_logging(level=level, json_format=True, force=True)
        return

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _policy_from_options(
    max_retries: Optional[int],
    base_delay: Optional[float],
    max_delay: Optional[float],
    jitter: Optional[float],
) -> RetryPolicy:
    defaults = get_settings().retry_policy()
    try:
        return RetryPolicy(
            max_retries=defaults.max_retries if max_retries is None else max_retries,
            base_delay_ms=defaults.base_delay_ms if base_delay is None else base_delay,
            max_delay_ms=defaults.max_delay_ms if max_delay is None else max_delay,
            jitter_fraction=defaults.jitter_fraction if jitter is None else jitter,
        )
    except ConfigurationError as e:
        console.print(f"[red]Invalid policy: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def schedule(
    max_retries: Annotated[Optional[int], typer.Option("--max-retries", "-n", help="Retry budget")] = None,
    base_delay: Annotated[Optional[float], typer.Option("--base-delay", help="Base delay (ms)")] = None,
    max_delay: Annotated[Optional[float], typer.Option("--max-delay", help="Delay cap (ms)")] = None,
    jitter: Annotated[Optional[float], typer.Option("--jitter", help="Jitter fraction 0-1")] = None,
) -> None:
    """Show the backoff delays a policy produces.

    Examples:
        genie-retry schedule
        genie-retry schedule -n 3 --base-delay 250 --jitter 0
    """
    policy = _policy_from_options(max_retries, base_delay, max_delay, jitter)
    executor = RetryExecutor(policy=policy)

    table = Table(title=f"Backoff schedule ({policy.total_attempts} attempts)")
    table.add_column("Retry", justify="right")
    table.add_column("Delay (ms)", justify="right")
    table.add_column("Jitter range (ms)", justify="right")
    table.add_column("Worst-case total (ms)", justify="right")

    worst_total = 0
    for attempt in range(policy.max_retries):
        delay = executor.base_delay_for(attempt)
        spread = delay * policy.jitter_fraction
        low = max(0, math.floor(delay - spread))
        high = math.floor(delay + spread)
        worst_total += high
        table.add_row(str(attempt + 1), f"{delay:g}", f"{low}-{high}", str(worst_total))

    console.print(table)
    if policy.max_retries == 0:
        console.print("[yellow]No retries: operations run exactly once.[/yellow]")


@app.command()
def settings() -> None:
    """Print effective settings (environment and .env)."""
    current = get_settings()

    table = Table(title="genie-retry settings")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in current.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


def _make_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


async def _probe(
    url: str, method: str, timeout: float, policy: RetryPolicy, metrics: RetryMetrics
) -> httpx.Response:
    executor = http_executor(policy=policy, listeners=(metrics,))
    async with _make_client(timeout) as client:
        return await send_with_retry(
            client, method, url, executor=executor, context=f"probe {method} {url}"
        )


@app.command()
def probe(
    url: Annotated[str, typer.Argument(help="URL to request")],
    method: Annotated[str, typer.Option("--method", "-X", help="HTTP method")] = "GET",
    timeout: Annotated[float, typer.Option("--timeout", help="Per-attempt timeout (s)")] = 10.0,
    max_retries: Annotated[Optional[int], typer.Option("--max-retries", "-n", help="Retry budget")] = None,
    base_delay: Annotated[Optional[float], typer.Option("--base-delay", help="Base delay (ms)")] = None,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Minimal output")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
    json_logs: Annotated[bool, typer.Option("--json", help="JSON log lines")] = False,
) -> None:
    """Request URL with retries and report how it went.

    Examples:
        genie-retry probe https://example.com/health
        genie-retry probe https://api.example.com/v1/ping -n 2 --json
    """
    setup_logging(quiet=quiet, verbose=verbose, json_format=json_logs)
    policy = _policy_from_options(max_retries, base_delay, None, None)

    metrics = RetryMetrics()

    try:
        response = asyncio.run(_probe(url, method.upper(), timeout, policy, metrics))
    except httpx.HTTPError as e:
        console.print(f"[red]Probe failed: {e}[/red]")
        if not quiet:
            console.print(metrics.to_summary())
        raise typer.Exit(code=1)

    console.print(f"[green]{response.status_code} {response.reason_phrase}[/green]")
    if not quiet:
        console.print(metrics.to_summary())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
