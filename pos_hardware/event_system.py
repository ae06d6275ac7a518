"""
Event contract of the local hardware bridge.

Defines the event types emitted by the bridge and parsing of their
payloads. The bridge transport itself lives outside this service.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from core.value_objects import HopperInventory


class HardwareEventType(str, Enum):
    """
    Enumeration of bridge event types.

    The first four are the ones this service reacts to.
    """

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    HOPPER_LEVEL = "hopper_level"
    JAM = "jam"
    CREDIT = "credit"
    DISPENSE_SUCCESS = "dispense_success"
    DISPENSE_ERROR = "dispense_error"
    STATUS = "status"
    ERROR = "error"


@dataclass(frozen=True)
class HardwareEvent:
    """
    An event received from the bridge.

    Attributes:
        type: Event type name.
        device_id: Emitting device, ``bridge`` for connection events.
        data: Event payload.
        timestamp: Milliseconds since the epoch.
    """

    type: str
    device_id: str = "bridge"
    data: Mapping[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    @classmethod
    def coerce(cls, raw: Union["HardwareEvent", Mapping[str, Any], None]) -> "HardwareEvent":
        """Accept an event object or the bridge's JSON dictionary."""
        if isinstance(raw, HardwareEvent):
            return raw
        raw = raw or {}
        timestamp = raw.get("timestamp")
        return cls(
            type=str(raw.get("type", "")),
            device_id=str(raw.get("deviceId") or raw.get("device_id") or "bridge"),
            data=raw.get("data") or {},
            timestamp=int(timestamp) if timestamp is not None else int(time.time() * 1000),
        )


@dataclass(frozen=True)
class HopperLevel:
    """One hopper reading from a ``hopper_level`` event."""

    denomination: float
    current_level: int
    low_threshold: int = 0
    hopper_id: Optional[str] = None
    capacity: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HopperLevel":
        def pick(camel: str, snake: str, default: Any = None) -> Any:
            value = data.get(camel)
            return data.get(snake, default) if value is None else value

        capacity = pick("capacity", "capacity")
        return cls(
            denomination=data["denomination"],
            current_level=int(pick("currentLevel", "current_level", 0)),
            low_threshold=int(pick("lowThreshold", "low_threshold", 0)),
            hopper_id=pick("hopperId", "hopper_id"),
            capacity=int(capacity) if capacity is not None else None,
        )

    @property
    def is_low(self) -> bool:
        return self.current_level < self.low_threshold

    def to_inventory(self) -> HopperInventory:
        return HopperInventory(
            denomination=self.denomination,
            available=max(0, self.current_level),
            low_threshold=self.low_threshold,
        )


def parse_hopper_levels(event: HardwareEvent) -> list[HopperLevel]:
    """
    Extract hopper readings from a ``hopper_level`` event.

    Raises:
        KeyError, TypeError, ValueError, ArithmeticError: On a malformed
            payload.
    """
    return [HopperLevel.from_dict(item) for item in event.data.get("hoppers") or []]
