"""
Value Objects for the hardware coordination service.

Immutable objects that represent values in the domain.
Value objects are compared by value, not by identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Optional, Union


Amount = Union[Decimal, float, int, str]

CENT = Decimal("0.01")


# =============================================================================
# Enums
# =============================================================================


class DeviceRole(str, Enum):
    """Role of a registered device. Decides its health check strategy."""

    PRINTER = "PRINTER"
    KDS = "KDS"
    NFC_SCANNER = "NFC_SCANNER"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Optional[str]) -> "DeviceRole":
        """Map a stored role name to a role, unknown names become OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class DeviceStatus(str, Enum):
    """Current-state status of a device."""

    ONLINE = "online"
    OFFLINE = "offline"
    ERROR = "error"


class CommandProfile(str, Enum):
    """Drawer-kick command dialect sent to the print bridge."""

    AUTO = "AUTO"
    ESC_P = "ESC_P"
    PULSE = "PULSE"


class CashEvent(str, Enum):
    """Payment events that can open the cash drawer."""

    CASH_INITIATED = "cash_initiated"
    CASH_COMPLETED = "cash_completed"


class HopperStatus(str, Enum):
    """Aggregate hopper condition reported by the hardware bridge."""

    OK = "ok"
    LOW = "low"
    JAM = "jam"


class PrintBridgeStatus(str, Enum):
    """Reachability of the local print agent."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    UNAVAILABLE = "unavailable"


# =============================================================================
# Money Value Object
# =============================================================================


@dataclass(frozen=True)
class Money:
    """
    Immutable value object representing monetary amounts.

    Internally stores amounts in cents (smallest unit) to avoid
    floating-point precision issues.

    Attributes:
        cents: Amount in cents.
    """

    cents: int = 0

    def __post_init__(self) -> None:
        """Validate the amount."""
        if self.cents < 0:
            raise ValueError("Amount cannot be negative")

    @classmethod
    def from_amount(cls, amount: Amount) -> "Money":
        """
        Create Money from a currency amount, rounding half-up to the cent.

        Floats are converted through their shortest string form, so
        ``1.3`` becomes exactly 130 cents.

        Raises:
            ValueError: If the amount is not a finite number or is negative.
        """
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
            if not value.is_finite():
                raise ValueError(f"Amount is not finite: {amount!r}")
            cents = int(value.quantize(CENT, rounding=ROUND_HALF_UP) * 100)
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {amount!r}") from e
        return cls(cents=cents)

    @property
    def amount(self) -> Decimal:
        """Get amount in currency units."""
        return (Decimal(self.cents) / 100).quantize(CENT)

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(cents=self.cents + other.cents)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(cents=max(0, self.cents - other.cents))

    def __str__(self) -> str:
        return f"{self.amount:.2f}"

    def __repr__(self) -> str:
        return f"Money(cents={self.cents})"


# =============================================================================
# Device Value Objects
# =============================================================================


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Device:
    """
    A registered physical or virtual device.

    Attributes:
        id: Registry identifier.
        role: Device role.
        status: Last stored status.
        last_seen: Last time the device was seen alive.
        health_check_interval_seconds: Period of the health check.
        ip_address: Network address for devices that can be probed.
        name: Display name.
    """

    id: str
    role: DeviceRole = DeviceRole.OTHER
    status: DeviceStatus = DeviceStatus.OFFLINE
    last_seen: Optional[datetime] = None
    health_check_interval_seconds: float = 60.0
    ip_address: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Device":
        """Build a device from a stored hash."""
        status = data.get("status") or DeviceStatus.OFFLINE.value
        try:
            parsed_status = DeviceStatus(status)
        except ValueError:
            parsed_status = DeviceStatus.OFFLINE
        interval = data.get("health_check_interval_seconds") or 60
        return cls(
            id=str(data["id"]),
            role=DeviceRole.parse(data.get("role")),
            status=parsed_status,
            last_seen=_parse_timestamp(data.get("last_seen")),
            health_check_interval_seconds=float(interval),
            ip_address=data.get("ip_address") or None,
            name=data.get("name") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat dictionary suitable for a Redis hash."""
        return {
            "id": self.id,
            "role": self.role.value,
            "status": self.status.value,
            "last_seen": self.last_seen.isoformat() if self.last_seen else "",
            "health_check_interval_seconds": self.health_check_interval_seconds,
            "ip_address": self.ip_address or "",
            "name": self.name or "",
        }


@dataclass(frozen=True)
class HealthLogEntry:
    """One health check result. Append-only."""

    device_id: str
    status: DeviceStatus
    checked_at: datetime
    error_message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "status": self.status.value,
            "error_message": self.error_message,
            "checked_at": self.checked_at.isoformat(),
        }


# =============================================================================
# Change Plan Value Objects
# =============================================================================


@dataclass(frozen=True)
class HopperInventory:
    """
    Snapshot of one coin/note channel.

    Attributes:
        denomination: Value of one coin/note.
        available: Number of coins/notes in the channel.
        low_threshold: Count below which the channel is considered low.
    """

    denomination: Decimal
    available: int
    low_threshold: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.denomination, Decimal):
            object.__setattr__(self, "denomination", Decimal(str(self.denomination)))

    @property
    def is_low(self) -> bool:
        return self.available < self.low_threshold


@dataclass(frozen=True)
class DenominationQuantity:
    """Quantity of one denomination in a change plan."""

    denomination: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.denomination * self.quantity


@dataclass(frozen=True)
class ChangePlan:
    """
    Result of change planning.

    Attributes:
        denominations: Coins/notes to dispense, largest denomination first.
        total_coins: Total number of coins/notes.
        feasible: Whether the hoppers can pay the amount exactly.
        use_drawer: Whether a manual drawer payout is required.
        reason: Explanation for drawer payouts and reserve warnings.
    """

    denominations: tuple[DenominationQuantity, ...] = field(default_factory=tuple)
    total_coins: int = 0
    feasible: bool = True
    use_drawer: bool = False
    reason: Optional[str] = None

    @classmethod
    def empty(cls) -> "ChangePlan":
        """Plan for a zero change amount."""
        return cls()

    @classmethod
    def drawer(cls, reason: str) -> "ChangePlan":
        """Plan that falls back to a manual drawer payout."""
        return cls(feasible=False, use_drawer=True, reason=reason)

    @property
    def total_amount(self) -> Decimal:
        return sum((line.subtotal for line in self.denominations), Decimal("0.00"))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "denominations": [
                {"denomination": str(line.denomination), "quantity": line.quantity}
                for line in self.denominations
            ],
            "total_coins": self.total_coins,
            "feasible": self.feasible,
            "use_drawer": self.use_drawer,
        }
        if self.reason:
            result["reason"] = self.reason
        return result


# =============================================================================
# Cash Drawer Value Objects
# =============================================================================


# Persisted JSON keys, shared with the web client
SETTINGS_ALIASES: dict[str, str] = {
    "enabled": "enabled",
    "printer_name": "printerName",
    "kick_mode": "kickMode",
    "t1": "t1",
    "t2": "t2",
    "command_profile": "commandProfile",
    "auto_open_on_cash_initiated": "autoOpenOnCashInitiated",
    "auto_open_on_cash_completed": "autoOpenOnCashCompleted",
    "require_manager_pin_for_manual_open": "requireManagerPinForManualOpen",
}


@dataclass(frozen=True)
class CashDrawerSettings:
    """Cash drawer configuration."""

    enabled: bool = True
    printer_name: Optional[str] = None
    kick_mode: int = 0
    t1: int = 25
    t2: int = 250
    command_profile: CommandProfile = CommandProfile.AUTO
    auto_open_on_cash_initiated: bool = True
    auto_open_on_cash_completed: bool = True
    require_manager_pin_for_manual_open: bool = True

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    def merge(self, **changes: Any) -> "CashDrawerSettings":
        """Return a copy with the given fields replaced."""
        if "command_profile" in changes:
            changes["command_profile"] = CommandProfile(changes["command_profile"])
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted camelCase form."""
        result = {}
        for name, alias in SETTINGS_ALIASES.items():
            value = getattr(self, name)
            result[alias] = value.value if isinstance(value, Enum) else value
        return result


@dataclass(frozen=True)
class KickCommand:
    """
    Drawer-kick descriptor handed to the print bridge.

    ``data`` holds the raw bytes for explicit profiles and is None for
    AUTO, where the bridge picks the dialect for the printer. An inert
    command must not be sent.
    """

    printer_name: Optional[str]
    profile: CommandProfile
    kick_mode: int = 0
    t1: int = 25
    t2: int = 250
    data: Optional[bytes] = None
    inert: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "printer_name": self.printer_name,
            "profile": self.profile.value,
            "kick_mode": self.kick_mode,
            "t1": self.t1,
            "t2": self.t2,
            "data": list(self.data) if self.data is not None else None,
            "inert": self.inert,
            "reason": self.reason,
        }
