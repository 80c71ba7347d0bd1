"""Paper run orchestration."""

from prediction_engine.scheduler.runner import PaperRunner

__all__ = ["PaperRunner"]
