"""
Application settings.

Provides typed configuration sections with in-code defaults.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from configs import REDIS_HOST, REDIS_PORT


# =============================================================================
# Configuration Classes
# =============================================================================


@dataclass(frozen=True)
class RedisSettings:
    """Redis connection settings."""

    host: str = REDIS_HOST
    port: int = REDIS_PORT
    decode_responses: bool = True


@dataclass(frozen=True)
class MonitorSettings:
    """Device health monitor settings."""

    printer_probe_timeout: float = 5.0
    kds_freshness_seconds: float = 30.0
    default_freshness_seconds: float = 5 * 60.0


@dataclass(frozen=True)
class ChangeSettings:
    """Change calculator settings."""

    # Denominations kept above their low threshold for future change
    critical_denominations: tuple[Decimal, ...] = (
        Decimal("0.05"),
        Decimal("0.10"),
        Decimal("0.20"),
    )
    max_change_amount: Decimal = Decimal("1000.00")
    currency_symbol: str = "RM"


@dataclass(frozen=True)
class CommandSettings:
    """Command channel settings."""

    command_channel: str = "pos_hardware_commands"

    @property
    def response_channel(self) -> str:
        """Get response channel name."""
        return f"{self.command_channel}_response"


# =============================================================================
# Main Settings
# =============================================================================


@dataclass
class Settings:
    """
    Main application settings.

    Aggregates all configuration sections.
    """

    redis: RedisSettings = field(default_factory=RedisSettings)
    monitor: MonitorSettings = field(default_factory=MonitorSettings)
    change: ChangeSettings = field(default_factory=ChangeSettings)
    commands: CommandSettings = field(default_factory=CommandSettings)


# =============================================================================
# Settings Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
