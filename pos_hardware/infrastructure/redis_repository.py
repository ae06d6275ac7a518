"""
Redis Repository implementations.

Provides type-safe, domain-specific access to Redis state storage.
Each repository encapsulates Redis keys and operations for its domain.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Awaitable, Optional, TypeVar

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisClientConnectionError
from redis.exceptions import RedisError

from configs import (
    AUDIT_LOG_KEY,
    CASH_DRAWER_SETTINGS_KEY,
    DEVICE_IDS_KEY,
    DEVICE_KEY_PREFIX,
    HEALTH_LOG_KEY_PREFIX,
)
from core.exceptions import RedisConnectionError, RepositoryError, SettingsError
from core.value_objects import Device, DeviceStatus, HealthLogEntry
from loggers import logger


T = TypeVar("T")


# =============================================================================
# Base Repository
# =============================================================================


class RedisStateRepository:
    """
    Base repository for Redis state operations.

    Wraps client errors in repository exceptions.
    """

    def __init__(self, redis: Redis) -> None:
        """
        Initialize the repository.

        Args:
            redis: Redis client instance.
        """
        self._redis = redis

    async def _execute(self, operation: Awaitable[T]) -> T:
        try:
            return await operation
        except (RedisClientConnectionError, ConnectionError) as e:
            raise RedisConnectionError(f"Redis connection error: {e}")
        except RedisError as e:
            raise RepositoryError(f"Redis error: {e}")

    async def get(self, key: str) -> Optional[str]:
        """Get a string value by key."""
        return await self._execute(self._redis.get(key))

    async def set(self, key: str, value: Any) -> None:
        """Set a key-value pair."""
        await self._execute(self._redis.set(key, value))

    async def append_json(self, key: str, value: dict[str, Any]) -> None:
        """Append a JSON document to a list."""
        await self._execute(self._redis.rpush(key, json.dumps(value)))


# =============================================================================
# Device Registry Repository
# =============================================================================


class RedisDeviceRepository(RedisStateRepository):
    """
    Repository for the device registry and health log.

    Keys:
    - devices: Set of registered device ids
    - device:<id>: Hash with the device fields
    - device_health_log:<id>: List of JSON health log entries
    """

    @staticmethod
    def _device_key(device_id: str) -> str:
        return f"{DEVICE_KEY_PREFIX}{device_id}"

    @staticmethod
    def _log_key(device_id: str) -> str:
        return f"{HEALTH_LOG_KEY_PREFIX}{device_id}"

    async def list_devices(self) -> list[Device]:
        """Read every registered device."""
        device_ids = await self._execute(self._redis.smembers(DEVICE_IDS_KEY))
        devices = []
        for device_id in sorted(device_ids):
            device = await self.get_device(device_id)
            if device is not None:
                devices.append(device)
        return devices

    async def get_device(self, device_id: str) -> Optional[Device]:
        """Read one device, None if not registered."""
        data = await self._execute(self._redis.hgetall(self._device_key(device_id)))
        if not data:
            return None
        data.setdefault("id", device_id)
        try:
            return Device.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise RepositoryError(f"Corrupt device record {device_id}: {e}")

    async def save_device(self, device: Device) -> None:
        """Register or overwrite a device."""
        await self._execute(self._redis.hset(self._device_key(device.id), mapping=device.to_dict()))
        await self._execute(self._redis.sadd(DEVICE_IDS_KEY, device.id))

    async def update_status(
        self,
        device_id: str,
        status: DeviceStatus,
        last_seen: Optional[datetime] = None,
    ) -> bool:
        """Update status and optionally last_seen of a registered device."""
        key = self._device_key(device_id)
        if not await self._execute(self._redis.exists(key)):
            return False

        mapping = {"status": status.value}
        if last_seen is not None:
            mapping["last_seen"] = last_seen.isoformat()
        await self._execute(self._redis.hset(key, mapping=mapping))
        return True

    async def add_health_log(self, entry: HealthLogEntry) -> None:
        """Append a health check entry."""
        await self.append_json(self._log_key(entry.device_id), entry.to_dict())

    async def get_health_log(self, device_id: str, limit: int = 50) -> list[dict[str, Any]]:
        """Get the latest health check entries, oldest first."""
        raw = await self._execute(self._redis.lrange(self._log_key(device_id), -limit, -1))
        return [json.loads(item) for item in raw]


# =============================================================================
# Settings Store
# =============================================================================


class RedisSettingsStore(RedisStateRepository):
    """
    JSON settings blob under a single key.

    Keys:
    - pos.cashDrawer.settings: Cash drawer settings (default key)
    """

    def __init__(self, redis: Redis, key: str = CASH_DRAWER_SETTINGS_KEY) -> None:
        super().__init__(redis)
        self.key = key

    async def load(self) -> Optional[dict[str, Any]]:
        """Load the stored blob."""
        raw = await self.get(self.key)
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SettingsError(f"Corrupt settings under {self.key}: {e}")
        if not isinstance(data, dict):
            raise SettingsError(f"Settings under {self.key} are not an object")
        return data

    async def save(self, data: dict[str, Any]) -> None:
        """Persist the full blob."""
        await self.set(self.key, json.dumps(data))


# =============================================================================
# Audit Log
# =============================================================================


class RedisAuditLog(RedisStateRepository):
    """
    Append-only audit trail.

    Keys:
    - audit_log: List of JSON audit records
    """

    async def record(self, action: str, entity: str, **fields: Any) -> None:
        """Append an audit record."""
        entry = {
            "action": action,
            "entity": entity,
            "created_at": datetime.now().astimezone().isoformat(),
            **fields,
        }
        await self.append_json(AUDIT_LOG_KEY, entry)
        logger.debug(f"Audit: {action} on {entity}")
