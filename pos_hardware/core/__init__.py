"""
Core module - Foundation layer with no external dependencies.

Contains:
- Exceptions
- Interfaces (Protocols)
- Value Objects
"""

from .exceptions import (
    HardwareError,
    DeviceError,
    DeviceNotFoundError,
    SettingsError,
    InvalidSettingsError,
    PrintBridgeError,
    RepositoryError,
    RedisConnectionError,
)
from .interfaces import (
    DeviceRepository,
    SettingsStore,
    AuditLog,
    HardwareEventBridge,
    PrintBridge,
)
from .value_objects import (
    Money,
    Device,
    DeviceRole,
    DeviceStatus,
    HealthLogEntry,
    HopperInventory,
    HopperStatus,
    DenominationQuantity,
    ChangePlan,
    CashDrawerSettings,
    CashEvent,
    CommandProfile,
    KickCommand,
)


__all__ = [
    # Exceptions
    "HardwareError",
    "DeviceError",
    "DeviceNotFoundError",
    "SettingsError",
    "InvalidSettingsError",
    "PrintBridgeError",
    "RepositoryError",
    "RedisConnectionError",
    # Interfaces
    "DeviceRepository",
    "SettingsStore",
    "AuditLog",
    "HardwareEventBridge",
    "PrintBridge",
    # Value Objects
    "Money",
    "Device",
    "DeviceRole",
    "DeviceStatus",
    "HealthLogEntry",
    "HopperInventory",
    "HopperStatus",
    "DenominationQuantity",
    "ChangePlan",
    "CashDrawerSettings",
    "CashEvent",
    "CommandProfile",
    "KickCommand",
]
