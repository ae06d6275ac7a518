"""
Hopper Tracker - Latest hopper state reported by the hardware bridge.
"""

from __future__ import annotations

from typing import Any

from core.interfaces import HardwareEventBridge
from core.value_objects import HopperInventory, HopperStatus
from event_system import HardwareEvent, HardwareEventType, parse_hopper_levels
from loggers import logger


class HopperTracker:
    """
    Keeps the latest hopper snapshot, bridge connectivity and hopper status.

    A ``jam`` holds until the next level report.
    """

    def __init__(self, bridge: HardwareEventBridge) -> None:
        self._bridge = bridge
        self._snapshot: tuple[HopperInventory, ...] = ()
        self._status = HopperStatus.OK
        self._connected = False
        self._attached = False
        self._handlers = {
            HardwareEventType.CONNECTED: self._on_connected,
            HardwareEventType.DISCONNECTED: self._on_disconnected,
            HardwareEventType.HOPPER_LEVEL: self._on_hopper_level,
            HardwareEventType.JAM: self._on_jam,
        }

    def attach(self) -> None:
        """Subscribe to the bridge events."""
        if self._attached:
            return
        for event_type, handler in self._handlers.items():
            self._bridge.on(event_type.value, handler)
        self._attached = True
        self._connected = self._bridge.is_connected()

    def detach(self) -> None:
        """Unsubscribe from the bridge events."""
        if not self._attached:
            return
        for event_type, handler in self._handlers.items():
            self._bridge.off(event_type.value, handler)
        self._attached = False

    async def connect(self) -> bool:
        """Attach and connect the bridge if needed. Failures are logged."""
        self.attach()
        if self._bridge.is_connected():
            self._connected = True
            return True
        try:
            await self._bridge.connect()
        except Exception as e:
            logger.error(f"Hardware bridge connection failed: {e}")
            return False
        self._connected = self._bridge.is_connected()
        return self._connected

    # =========================================================================
    # State
    # =========================================================================

    def snapshot(self) -> list[HopperInventory]:
        """Latest known inventory, empty before the first level report."""
        return list(self._snapshot)

    @property
    def hopper_status(self) -> HopperStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._connected

    def to_dict(self) -> dict[str, Any]:
        return {
            "connected": self._connected,
            "hopper_status": self._status.value,
            "hoppers": [
                {
                    "denomination": str(hopper.denomination),
                    "available": hopper.available,
                    "low_threshold": hopper.low_threshold,
                }
                for hopper in self._snapshot
            ],
        }

    # =========================================================================
    # Event Handlers
    # =========================================================================

    def _on_connected(self, event: Any) -> None:
        self._connected = True
        logger.info("Hardware bridge connected")

    def _on_disconnected(self, event: Any) -> None:
        self._connected = False
        logger.warning("Hardware bridge disconnected")

    def _on_hopper_level(self, event: Any) -> None:
        try:
            levels = parse_hopper_levels(HardwareEvent.coerce(event))
            snapshot = tuple(level.to_inventory() for level in levels)
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.error(f"Malformed hopper_level event: {e}")
            return

        self._snapshot = snapshot
        self._status = HopperStatus.LOW if any(level.is_low for level in levels) else HopperStatus.OK
        if self._status is HopperStatus.LOW:
            logger.warning("Hopper coin level low")

    def _on_jam(self, event: Any) -> None:
        self._status = HopperStatus.JAM
        logger.error(f"Hopper jam reported: {HardwareEvent.coerce(event).data}")
