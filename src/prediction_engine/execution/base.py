"""Abstract base class for action sinks."""

from abc import ABC, abstractmethod
from typing import Union

from prediction_engine.models.order import CancelOrder, PlaceOrder

Action = Union[PlaceOrder, CancelOrder]


class BaseActionSink(ABC):
    """
    Abstract destination for engine actions.

    Implementations:
    - QueueActionSink: in-process asyncio queue consumed by an executor
    - PaperExchange reads from a QueueActionSink to simulate fills
    """

    @abstractmethod
    async def send(self, action: Action) -> None:
        """
        Hand an action to the executor.

        Raises:
            ChannelError: if the action cannot be delivered
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Stop accepting actions."""
        pass
