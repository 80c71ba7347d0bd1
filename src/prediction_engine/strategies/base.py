"""
Base strategy interface.

All strategies must implement this interface to be run by the engine.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from prediction_engine.core.context import StrategyContext
from prediction_engine.errors import InvalidInputError
from prediction_engine.models.signal import Signal


class ParameterType(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    STRING = "string"
    ENUM = "enum"


class ParameterDef(BaseModel):
    """
    Declaration of one tunable strategy parameter.

    FLOAT and DECIMAL values are both held as Decimal once accepted so
    they combine exactly with prices.
    """

    name: str
    description: str = ""
    param_type: ParameterType
    default: Any = None
    min: Optional[Any] = None
    max: Optional[Any] = None
    allowed_values: Optional[list[Any]] = None

    def coerce(self, value: Any) -> Any:
        """
        Convert `value` to this parameter's type and check its range.

        Raises:
            InvalidInputError: on a wrong type or an out-of-range value
        """
        converted = self._convert(value)

        if self.min is not None and converted < self.min:
            raise InvalidInputError(
                f"Parameter {self.name}={converted} is below minimum {self.min}"
            )
        if self.max is not None and converted > self.max:
            raise InvalidInputError(
                f"Parameter {self.name}={converted} is above maximum {self.max}"
            )
        if self.allowed_values is not None and converted not in self.allowed_values:
            raise InvalidInputError(
                f"Parameter {self.name}={converted!r} is not one of {self.allowed_values}"
            )
        return converted

    def _convert(self, value: Any) -> Any:
        kind = self.param_type

        # bool is an int subclass; only BOOLEAN accepts it
        if isinstance(value, bool) and kind != ParameterType.BOOLEAN:
            raise self._type_error(value)

        if kind == ParameterType.INTEGER:
            if isinstance(value, int):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
            if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
                return int(value)
            raise self._type_error(value)

        if kind in (ParameterType.FLOAT, ParameterType.DECIMAL):
            if isinstance(value, Decimal):
                number = value
            elif isinstance(value, (int, float)):
                number = Decimal(str(value))
            elif isinstance(value, str) and kind == ParameterType.DECIMAL:
                try:
                    number = Decimal(value)
                except InvalidOperation:
                    raise self._type_error(value) from None
            else:
                raise self._type_error(value)
            if not number.is_finite():
                raise InvalidInputError(f"Parameter {self.name} must be finite")
            return number

        if kind == ParameterType.BOOLEAN:
            if isinstance(value, bool):
                return value
            raise self._type_error(value)

        # STRING and ENUM
        if isinstance(value, str):
            return value
        raise self._type_error(value)

    def _type_error(self, value: Any) -> InvalidInputError:
        return InvalidInputError(
            f"Parameter {self.name} expects {self.param_type.value}, "
            f"got {type(value).__name__}"
        )


class StrategyMetadata(BaseModel):
    name: str
    description: str = ""
    version: str = "1.0.0"
    author: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class StrategyConfig(BaseModel):
    """Per-strategy engine configuration."""

    enabled: bool = True
    auto_execute: bool = False
    max_position_size: Optional[Decimal] = None
    max_total_exposure: Optional[Decimal] = None
    min_signal_interval_secs: int = Field(default=0, ge=0)
    include_markets: list[str] = Field(default_factory=list)
    exclude_markets: list[str] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)


class BaseStrategy(ABC):
    """
    Abstract base class for trading strategies.

    Strategies are plug-ins that:
    1. Evaluate a StrategyContext and emit signals
    2. Learn about executed signals and fills through hooks
    3. Expose typed, range-checked parameters

    Declared parameters live as attributes of the same name.
    """

    PARAMETERS: tuple[ParameterDef, ...] = ()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this strategy."""
        pass

    @property
    def description(self) -> str:
        return ""

    @property
    def tags(self) -> list[str]:
        return []

    @property
    def metadata(self) -> StrategyMetadata:
        return StrategyMetadata(
            name=self.name,
            description=self.description,
            tags=self.tags,
        )

    async def initialize(self, config: StrategyConfig) -> None:
        """
        Apply declared parameters from `config.parameters`.

        Undeclared keys are ignored.

        Raises:
            InvalidInputError: if a declared value has the wrong type or range
        """
        for name in self.parameters():
            if name in config.parameters:
                self._apply_parameter(name, config.parameters[name])
        self.validate()

    @abstractmethod
    def evaluate(self, context: StrategyContext) -> list[Signal]:
        """
        Evaluate the context and generate trading signals.

        Called once per eligible tick. Must not block and must not call
        back into the engine.
        """
        pass

    def on_signal_executed(self, signal: Signal, success: bool) -> None:
        pass

    def on_order_filled(self, order_id: str, price: Decimal, size: Decimal) -> None:
        pass

    def on_order_cancelled(self, order_id: str) -> None:
        pass

    def on_market_update(self, context: StrategyContext) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    def validate(self) -> None:
        """Check cross-parameter consistency; raise InvalidInputError if broken."""

    def parameters(self) -> dict[str, ParameterDef]:
        return {p.name: p for p in self.PARAMETERS}

    def _apply_parameter(self, name: str, value: Any) -> None:
        definition = self.parameters().get(name)
        if definition is None:
            raise InvalidInputError(f"Unknown parameter for {self.name}: {name}")
        setattr(self, name, definition.coerce(value))

    def set_parameter(self, name: str, value: Any) -> None:
        """Set one parameter; the old value is restored if validate() rejects it."""
        previous = getattr(self, name, None)
        self._apply_parameter(name, value)
        try:
            self.validate()
        except InvalidInputError:
            setattr(self, name, previous)
            raise


class StrategyRegistry:
    """Registry of available strategies."""

    _strategies: dict[str, type[BaseStrategy]] = {}

    @classmethod
    def register(cls, strategy_class: type[BaseStrategy]) -> type[BaseStrategy]:
        """Register a strategy class."""
        # Instantiate to get name
        instance = strategy_class()
        cls._strategies[instance.name] = strategy_class
        return strategy_class

    @classmethod
    def get(cls, name: str) -> Optional[type[BaseStrategy]]:
        """Get a strategy class by name."""
        return cls._strategies.get(name)

    @classmethod
    def list_all(cls) -> list[str]:
        """List all registered strategy names."""
        return list(cls._strategies.keys())

    @classmethod
    def create(cls, name: str) -> BaseStrategy:
        strategy_class = cls._strategies.get(name)
        if strategy_class is None:
            raise InvalidInputError(f"Unknown strategy: {name}")
        return strategy_class()

    @classmethod
    def create_all(cls) -> list[BaseStrategy]:
        """Create instances of all registered strategies."""
        return [strategy_class() for strategy_class in cls._strategies.values()]
