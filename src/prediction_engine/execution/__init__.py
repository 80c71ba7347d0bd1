"""
Action sinks and the simulated market feed.

PaperExchange depends on the engine and is imported from
prediction_engine.execution.paper.
"""

from prediction_engine.execution.base import Action, BaseActionSink
from prediction_engine.execution.feed import SimulatedMarketFeed
from prediction_engine.execution.queue import QueueActionSink

__all__ = [
    "Action",
    "BaseActionSink",
    "QueueActionSink",
    "SimulatedMarketFeed",
]
