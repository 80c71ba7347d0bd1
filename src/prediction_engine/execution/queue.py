"""In-process action sink backed by an unbounded asyncio queue."""

import asyncio

import structlog

from prediction_engine.errors import ChannelError
from prediction_engine.execution.base import Action, BaseActionSink

logger = structlog.get_logger()


class QueueActionSink(BaseActionSink):
    """
    Action sink for a single in-process consumer.

    `send` never blocks. Once closed, further sends raise ChannelError;
    actions already queued can still be received.
    """

    def __init__(self):
        self._queue: asyncio.Queue[Action] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def send(self, action: Action) -> None:
        if self._closed:
            raise ChannelError("Action sink is closed")
        self._queue.put_nowait(action)
        logger.debug("action_queued", action=type(action).__name__, queued=self._queue.qsize())

    async def receive(self) -> Action:
        """Wait for the next action."""
        return await self._queue.get()

    def drain(self) -> list[Action]:
        """Take every queued action without waiting."""
        actions = []
        while True:
            try:
                actions.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return actions

    async def close(self) -> None:
        self._closed = True
        logger.debug("action_sink_closed", remaining=self._queue.qsize())
