"""
Engine metrics and reporting.

Generates a text report with:
- Per-strategy status and counters
- Pending signal queue
- Recent signal history and outcomes
- Paper run summary (when given)
"""

from decimal import Decimal
from typing import Optional

import structlog

from prediction_engine.core.engine import StrategyEngine

logger = structlog.get_logger()


def generate_engine_report(
    engine: StrategyEngine,
    summary: Optional[dict] = None,
    recent: int = 10,
) -> str:
    """
    Generate a formatted engine report.

    Args:
        engine: Engine to report on
        summary: Run summary from PaperRunner
        recent: Number of history records to include

    Returns:
        Formatted report string
    """
    lines = [
        "=" * 60,
        "PREDICTION ENGINE REPORT",
        "=" * 60,
        "",
        f"Engine: {'running' if engine.is_running else 'stopped'}",
        f"Pending signals: {len(engine.pending_signals)}",
        "",
        "STRATEGIES",
        "-" * 40,
    ]

    for name, handle in engine.strategies.items():
        lines.append(
            f"{name:<16} {handle.status.value:<8} "
            f"generated={handle.signals_generated} "
            f"executed={handle.signals_executed} "
            f"errors={handle.errors}"
        )
    lines.append("")

    history = engine.signal_history[-recent:]
    if history:
        lines.extend(["RECENT SIGNALS", "-" * 40])
        for record in history:
            signal = record.signal
            outcome = record.result.kind.value if record.result else "dispatched"
            lines.append(
                f"{signal.strategy_name:<16} {signal.side.value:<4} "
                f"{signal.size} @ {signal.price} {signal.market_id} [{outcome}]"
            )
        lines.append("")

    if summary:
        lines.extend([
            "RUN SUMMARY",
            "-" * 40,
            f"Ticks: {summary.get('ticks', 0)}",
            f"Signals approved: {summary.get('signals_approved', 0)}",
            f"Signals executed: {summary.get('signals_executed', 0)}",
            f"Orders filled: {summary.get('orders_filled', 0)}",
            f"Orders cancelled: {summary.get('orders_cancelled', 0)}",
            f"Ending balance: {summary.get('ending_balance', 0)}",
            f"Ending value: {summary.get('ending_value', 0)}",
            f"Max drawdown: {summary.get('max_drawdown', 0):.2%}",
            "",
        ])
        errors = summary.get("errors", [])
        if errors:
            lines.extend(["ERRORS", "-" * 40])
            lines.extend(f"  - {error}" for error in errors)
            lines.append("")

    lines.append("=" * 60)

    logger.info(
        "engine_report_generated",
        strategies=len(engine.strategies),
        history=len(engine.signal_history),
    )
    return "\n".join(lines)


def calculate_max_drawdown(equity_curve: list[Decimal]) -> Decimal:
    """
    Maximum peak-to-trough drawdown of an equity curve.

    Returns:
        Drawdown as a fraction (0.1 = 10% drawdown)
    """
    if len(equity_curve) < 2:
        return Decimal("0")

    peak = equity_curve[0]
    worst = Decimal("0")
    for value in equity_curve:
        peak = max(peak, value)
        if peak > 0:
            worst = max(worst, (peak - value) / peak)
    return worst
