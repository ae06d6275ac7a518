"""
Infrastructure layer - External dependencies and implementations.

Contains:
- Repository implementations (Redis)
- Print bridge client
- Configuration
"""

from .redis_repository import (
    RedisStateRepository,
    RedisDeviceRepository,
    RedisSettingsStore,
    RedisAuditLog,
)
from .print_bridge import RedisPrintBridge
from .settings import (
    Settings,
    get_settings,
)


__all__ = [
    # Repositories
    "RedisStateRepository",
    "RedisDeviceRepository",
    "RedisSettingsStore",
    "RedisAuditLog",
    # Print bridge
    "RedisPrintBridge",
    # Settings
    "Settings",
    "get_settings",
]
