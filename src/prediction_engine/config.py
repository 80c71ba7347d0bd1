"""
Configuration management using pydantic-settings.
Engine, risk and observability parameters are loaded from environment variables.
"""

from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from prediction_engine.core.risk import RiskConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Risk limits have safe defaults but should be reviewed before
    attaching a live action sink.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PREDICTION_ENGINE_",
        case_sensitive=False,
        extra="ignore",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # ENGINE
    # ─────────────────────────────────────────────────────────────────────────

    max_strategy_errors: int = Field(
        default=5,
        description="Consecutive evaluation failures before a strategy enters ERROR",
    )
    max_signal_history: int = Field(
        default=1000,
        description="Number of executed-signal records kept for auditing",
    )
    evaluation_interval_ms: int = Field(
        default=1000,
        description="Tick interval used by the paper runner",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # RISK MANAGEMENT (CRITICAL - review carefully)
    # ─────────────────────────────────────────────────────────────────────────

    risk_enabled: bool = Field(
        default=True,
        description="Master switch; when false every signal is rejected",
    )
    max_position_size: Optional[Decimal] = Field(
        default=Decimal("100"),
        description="Largest size a single signal may request",
    )
    min_position_size: Optional[Decimal] = Field(
        default=Decimal("1"),
        description="Smallest size a single signal may request",
    )
    max_total_exposure: Optional[Decimal] = Field(
        default=Decimal("1000"),
        description="Maximum value held across all positions",
    )
    max_positions: Optional[int] = Field(
        default=10,
        description="Maximum number of open token positions",
    )
    max_exposure_per_market: Optional[Decimal] = Field(
        default=Decimal("200"),
        description="Maximum value held in one market",
    )
    max_daily_volume: Optional[Decimal] = Field(default=None)
    max_daily_trades: Optional[int] = Field(default=None)
    max_daily_loss: Optional[Decimal] = Field(default=None)
    min_balance: Optional[Decimal] = Field(default=Decimal("10"))
    loss_cooldown_secs: Optional[int] = Field(default=None)
    blacklisted_markets: list[str] = Field(
        default_factory=list,
        description="Markets that are never traded",
    )
    whitelisted_markets: list[str] = Field(
        default_factory=list,
        description="Only trade these markets (empty = all)",
    )

    # ─────────────────────────────────────────────────────────────────────────
    # OBSERVABILITY
    # ─────────────────────────────────────────────────────────────────────────

    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="console",
        description="Log format: json or console"
    )
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook for alerts (optional)"
    )

    # ─────────────────────────────────────────────────────────────────────────
    # VALIDATION
    # ─────────────────────────────────────────────────────────────────────────

    @field_validator("max_strategy_errors", "max_signal_history")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    def risk_config(self) -> RiskConfig:
        """Build the runtime risk configuration."""
        return RiskConfig(
            enabled=self.risk_enabled,
            max_position_size=self.max_position_size,
            min_position_size=self.min_position_size,
            max_total_exposure=self.max_total_exposure,
            max_positions=self.max_positions,
            max_exposure_per_market=self.max_exposure_per_market,
            max_daily_volume=self.max_daily_volume,
            max_daily_trades=self.max_daily_trades,
            max_daily_loss=self.max_daily_loss,
            min_balance=self.min_balance,
            loss_cooldown_secs=self.loss_cooldown_secs,
            blacklisted_markets=list(self.blacklisted_markets),
            whitelisted_markets=list(self.whitelisted_markets),
        )

    def engine_config(self):
        """Build the runtime engine configuration."""
        from prediction_engine.core.engine import EngineConfig

        return EngineConfig(
            risk_config=self.risk_config(),
            max_strategy_errors=self.max_strategy_errors,
            max_signal_history=self.max_signal_history,
            evaluation_interval_ms=self.evaluation_interval_ms,
        )


# Global settings instance
settings = Settings()
