"""
Command-line interface using Typer.

Usage:
    prediction-engine run --ticks 100
    prediction-engine run --ticks 20 --strategy momentum --seed 7
    prediction-engine strategies
    prediction-engine config
"""

import asyncio
from decimal import Decimal
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from prediction_engine.config import settings
from prediction_engine.execution.feed import SimulatedMarketFeed
from prediction_engine.observability.logging import setup_logging
from prediction_engine.observability.metrics import generate_engine_report
from prediction_engine.scheduler.runner import PaperRunner
from prediction_engine.strategies.base import StrategyRegistry

app = typer.Typer(
    name="prediction-engine",
    help="Strategy evaluation and risk engine for binary prediction markets",
    add_completion=False,
)
console = Console()


def _fmt(value: Optional[object]) -> str:
    return "none" if value is None else str(value)


def print_config_summary() -> None:
    """Print current configuration summary."""
    table = Table(title="Configuration Summary", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Max Strategy Errors", str(settings.max_strategy_errors))
    table.add_row("Signal History", str(settings.max_signal_history))
    table.add_row("Evaluation Interval", f"{settings.evaluation_interval_ms} ms")
    table.add_row("Risk Checks", "enabled" if settings.risk_enabled else "DISABLED")
    table.add_row("Position Size", f"{_fmt(settings.min_position_size)} - {_fmt(settings.max_position_size)}")
    table.add_row("Max Total Exposure", _fmt(settings.max_total_exposure))
    table.add_row("Max Positions", _fmt(settings.max_positions))
    table.add_row("Max Per-Market", _fmt(settings.max_exposure_per_market))
    table.add_row("Blacklisted", ", ".join(settings.blacklisted_markets) or "-")
    table.add_row("Whitelisted", ", ".join(settings.whitelisted_markets) or "all")
    table.add_row("Log", f"{settings.log_level} / {settings.log_format}")
    table.add_row("Slack Alerts", "✓" if settings.slack_webhook_url else "✗")

    console.print(table)


@app.command()
def run(
    ticks: int = typer.Option(
        100,
        "--ticks", "-n",
        min=1,
        help="Number of evaluation ticks",
    ),
    strategy: Optional[list[str]] = typer.Option(
        None,
        "--strategy", "-s",
        help="Strategy to run (repeatable); defaults to all built-ins",
    ),
    interval_ms: int = typer.Option(
        0,
        "--interval-ms",
        min=0,
        help="Delay between ticks in milliseconds",
    ),
    markets: int = typer.Option(3, "--markets", min=1, help="Number of simulated markets"),
    balance: float = typer.Option(1000.0, "--balance", help="Starting paper balance"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Random seed for a reproducible run"),
    report: bool = typer.Option(False, "--report", help="Print the full engine report"),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """
    Run the engine against a simulated market feed with paper execution.
    """
    setup_logging(level="DEBUG" if verbose else settings.log_level)

    if strategy:
        unknown = [name for name in strategy if StrategyRegistry.get(name) is None]
        if unknown:
            console.print(f"[red]Unknown strategy: {', '.join(unknown)}[/red]")
            console.print(f"Available: {', '.join(StrategyRegistry.list_all())}")
            raise typer.Exit(1)
        selected = [StrategyRegistry.create(name) for name in strategy]
    else:
        selected = StrategyRegistry.create_all()

    runner = PaperRunner(
        strategies=selected,
        feed=SimulatedMarketFeed(num_markets=markets, seed=seed),
        initial_balance=Decimal(str(balance)),
        interval_ms=interval_ms,
        seed=seed,
    )

    console.print(f"\n[bold]Starting paper run: {ticks} ticks, {len(selected)} strategies[/bold]\n")
    summary = asyncio.run(runner.run(ticks))

    table = Table(title="Strategies", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Generated", justify="right")
    table.add_column("Executed", justify="right")
    table.add_column("Errors", justify="right")
    for name, stats in summary["strategies"].items():
        table.add_row(
            name,
            stats["status"],
            str(stats["generated"]),
            str(stats["executed"]),
            str(stats["errors"]),
        )
    console.print(table)

    console.print(Panel(
        f"Ticks: {summary['ticks']}\n"
        f"Signals Approved: {summary['signals_approved']}\n"
        f"Signals Executed: {summary['signals_executed']}\n"
        f"Orders Filled: {summary['orders_filled']}\n"
        f"Orders Cancelled: {summary['orders_cancelled']}\n"
        f"Orders Rejected: {summary['orders_rejected']}\n"
        f"Ending Balance: {summary['ending_balance']:.2f}\n"
        f"Ending Value: {summary['ending_value']:.2f}\n"
        f"Max Drawdown: {summary['max_drawdown']:.2%}\n"
        f"Duration: {summary.get('duration_seconds', 0):.1f}s",
        title="Run Complete",
        border_style="green" if not summary.get("errors") else "red",
    ))

    for error in summary.get("errors", []):
        console.print(f"[red]Error: {error}[/red]")

    if report:
        console.print(generate_engine_report(runner.engine, summary))


@app.command()
def strategies() -> None:
    """
    List built-in strategies and their parameters.
    """
    for instance in StrategyRegistry.create_all():
        meta = instance.metadata
        table = Table(
            title=f"{meta.name} v{meta.version}",
            caption=meta.description,
            show_header=True,
        )
        table.add_column("Parameter", style="cyan")
        table.add_column("Type")
        table.add_column("Default", style="green")
        table.add_column("Range")
        table.add_column("Description", style="dim")

        for param in instance.parameters().values():
            table.add_row(
                param.name,
                param.param_type.value,
                str(param.default),
                f"{_fmt(param.min)} - {_fmt(param.max)}",
                param.description,
            )
        console.print(table)
        if meta.tags:
            console.print(f"[dim]tags: {', '.join(meta.tags)}[/dim]\n")


@app.command()
def config() -> None:
    """
    Display current configuration.
    """
    print_config_summary()

    console.print("\n[dim]Configuration is loaded from PREDICTION_ENGINE_* environment variables.[/dim]")
    console.print("[dim]Create a .env file or export variables to customize.[/dim]")


if __name__ == "__main__":
    app()
