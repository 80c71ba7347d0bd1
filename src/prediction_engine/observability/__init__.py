"""Observability: logging, reporting and alerts."""

from prediction_engine.observability.alerts import send_alert, send_strategy_error_alert
from prediction_engine.observability.logging import setup_logging
from prediction_engine.observability.metrics import calculate_max_drawdown, generate_engine_report

__all__ = [
    "setup_logging",
    "generate_engine_report",
    "calculate_max_drawdown",
    "send_alert",
    "send_strategy_error_alert",
]
