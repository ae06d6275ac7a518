"""
Interfaces (Protocols) for the hardware coordination service.

Defines contracts for storage, the hardware event bridge and the print
bridge using Python's Protocol for structural subtyping.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from core.value_objects import (
    Device,
    DeviceStatus,
    HealthLogEntry,
    KickCommand,
    PrintBridgeStatus,
)


# =============================================================================
# Repository Interfaces
# =============================================================================


@runtime_checkable
class DeviceRepository(Protocol):
    """Protocol for the device registry store."""

    async def list_devices(self) -> list[Device]:
        """Read the whole registry."""
        ...

    async def get_device(self, device_id: str) -> Optional[Device]:
        """Read one device, None if it is not registered."""
        ...

    async def update_status(
        self,
        device_id: str,
        status: DeviceStatus,
        last_seen: Optional[datetime] = None,
    ) -> bool:
        """
        Point update of status (and last_seen when given).

        Returns:
            False if the device is not registered.
        """
        ...

    async def add_health_log(self, entry: HealthLogEntry) -> None:
        """Append a health-check log entry."""
        ...


@runtime_checkable
class SettingsStore(Protocol):
    """Protocol for a single-key JSON settings blob."""

    async def load(self) -> Optional[dict[str, Any]]:
        """Load the stored blob, None when nothing is stored."""
        ...

    async def save(self, data: dict[str, Any]) -> None:
        """Persist the full blob."""
        ...


@runtime_checkable
class AuditLog(Protocol):
    """Protocol for the audit trail."""

    async def record(self, action: str, entity: str, **fields: Any) -> None:
        ...


# =============================================================================
# Bridge Interfaces
# =============================================================================


EventCallback = Callable[[Any], Any]


@runtime_checkable
class HardwareEventBridge(Protocol):
    """
    Local hardware bridge.

    Emits ``connected``, ``disconnected``, ``hopper_level`` and ``jam``
    events to registered callbacks.
    """

    async def connect(self) -> None:
        ...

    def is_connected(self) -> bool:
        ...

    def on(self, event_type: str, callback: EventCallback) -> None:
        ...

    def off(self, event_type: str, callback: EventCallback) -> None:
        ...


@runtime_checkable
class PrintBridge(Protocol):
    """Print-bridge command surface used to kick the cash drawer."""

    async def send_kick(self, command: KickCommand) -> None:
        """
        Send a kick command.

        Raises:
            PrintBridgeError: If the bridge cannot deliver the command.
        """
        ...

    async def status(self) -> PrintBridgeStatus:
        """Report whether a print agent is reachable. Never raises."""
        ...

    async def list_printers(self) -> list[str]:
        """Printer names known to the print agent, empty when unreachable."""
        ...
