"""Exception types raised by the engine."""


class EngineError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(EngineError):
    """Bad parameter, duplicate/unknown name, or a signal that cannot become an order."""


class ChannelError(EngineError):
    """An action could not be handed to the action sink."""
