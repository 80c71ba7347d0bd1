"""Position data model."""

from decimal import Decimal

from pydantic import BaseModel, Field, computed_field


class Position(BaseModel):
    """Current holding of one outcome token."""

    market_id: str
    token_id: str
    outcome_name: str = Field(default="")
    size: Decimal = Field(default=Decimal("0"))
    avg_price: Decimal = Field(default=Decimal("0"), description="Average entry price")
    current_price: Decimal = Field(default=Decimal("0"))
    realized_pnl: Decimal = Field(default=Decimal("0"))

    @computed_field
    @property
    def cost_basis(self) -> Decimal:
        """Total cost of the position."""
        return self.size * self.avg_price

    @computed_field
    @property
    def market_value(self) -> Decimal:
        """Value at the current price."""
        return self.size * self.current_price

    @computed_field
    @property
    def unrealized_pnl(self) -> Decimal:
        return self.market_value - self.cost_basis

    @computed_field
    @property
    def unrealized_pnl_percent(self) -> Decimal:
        """Unrealized P&L as a percentage of cost (0 when there is no cost)."""
        if self.cost_basis == 0:
            return Decimal("0")
        return self.unrealized_pnl / self.cost_basis * 100

    def is_profitable(self) -> bool:
        return self.unrealized_pnl > 0
