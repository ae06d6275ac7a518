"""
Device Health Monitor - Periodic supervision of registered devices.

Runs one independent asyncio task per device. Each task runs the health
check for its role at a fixed rate of the device's own interval; a slow
check does not push later ticks back.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from core.interfaces import DeviceRepository
from core.value_objects import Device, DeviceRole, DeviceStatus, HealthLogEntry
from domain.health_checks import HealthCheck, build_health_checks
from infrastructure.settings import get_settings
from loggers import logger


Clock = Callable[[], datetime]

MIN_CHECK_INTERVAL_SECONDS = 1.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeviceHealthMonitor:
    """
    Supervises device health.

    The device row is a current-state cache written only when a check
    changes the status; the health log receives one entry per check.
    Nothing raised by a check or by storage escapes the monitor.
    """

    def __init__(
        self,
        repository: DeviceRepository,
        health_checks: Optional[dict[DeviceRole, HealthCheck]] = None,
        clock: Clock = utc_now,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            repository: Device registry store.
            health_checks: Role to strategy table. Built from settings when
                omitted.
            clock: Returns the current timezone-aware time.
        """
        self._repository = repository
        self._health_checks = health_checks or build_health_checks(get_settings().monitor)
        self._clock = clock
        self._tasks: dict[str, asyncio.Task] = {}
        self._is_monitoring = False
        # Bumped on every start/stop so a stale start cannot install tasks
        self._generation = 0

    @property
    def is_monitoring(self) -> bool:
        return self._is_monitoring

    @property
    def monitored_device_ids(self) -> set[str]:
        return set(self._tasks)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start_monitoring(self) -> None:
        """
        Read the registry and start one periodic check per device.

        Does nothing if monitoring is already active. Registry changes are
        only picked up by a fresh stop/start cycle.
        """
        if self._is_monitoring:
            return

        self._is_monitoring = True
        self._generation += 1
        generation = self._generation
        logger.info("Starting device health monitoring...")

        try:
            devices = await self._repository.list_devices()
        except Exception as e:
            logger.error(f"Failed to read device registry: {e}")
            if generation == self._generation:
                self._is_monitoring = False
            return

        if generation != self._generation:
            logger.debug("Monitoring stopped while reading the registry")
            return

        for device in devices:
            self._monitor_device(device)
        logger.info(f"Monitoring {len(devices)} devices")

    def stop_monitoring(self) -> None:
        """Cancel every periodic check. In-flight checks are not awaited."""
        logger.info("Stopping device health monitoring...")
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        self._is_monitoring = False
        self._generation += 1

    async def shutdown(self) -> None:
        """Stop monitoring and wait for the cancelled tasks to finish."""
        tasks = list(self._tasks.values())
        self.stop_monitoring()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _monitor_device(self, device: Device) -> None:
        existing = self._tasks.pop(device.id, None)
        if existing is not None:
            existing.cancel()
        self._tasks[device.id] = asyncio.create_task(
            self._run_periodic(device),
            name=f"health-check:{device.id}",
        )

    async def _run_periodic(self, device: Device) -> None:
        interval = max(device.health_check_interval_seconds, MIN_CHECK_INTERVAL_SECONDS)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + interval
        while self._is_monitoring:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            await self.check_device(device.id)
            deadline += interval
            behind = loop.time() - deadline
            if behind > 0 and interval > 0:
                # Overran one or more ticks; skip them instead of bursting
                deadline += (behind // interval + 1) * interval

    # =========================================================================
    # Checks
    # =========================================================================

    async def check_device(self, device_id: str) -> Optional[DeviceStatus]:
        """
        Run one health check for a device.

        Reads the current row, evaluates the role strategy, writes the row
        only on a status change and always appends a log entry.

        Returns:
            The computed status, or None if the device could not be read.
        """
        try:
            device = await self._repository.get_device(device_id)
        except Exception as e:
            logger.error(f"Failed to read device {device_id}: {e}")
            return None

        if device is None:
            logger.warning(f"Device {device_id} is no longer registered")
            return None

        status, error_message = await self._evaluate(device)
        now = self._clock()

        try:
            if status != device.status:
                # last_seen records when the device was last alive
                last_seen = now if status is DeviceStatus.ONLINE else None
                await self._repository.update_status(device.id, status, last_seen)
                logger.info(f"Device {device.id}: {device.status.value} -> {status.value}")

            await self._repository.add_health_log(
                HealthLogEntry(
                    device_id=device.id,
                    status=status,
                    checked_at=now,
                    error_message=error_message,
                )
            )
        except Exception as e:
            logger.error(f"Failed to persist health check for {device.id}: {e}")

        return status

    async def _evaluate(self, device: Device) -> tuple[DeviceStatus, Optional[str]]:
        try:
            strategy = self._health_checks.get(device.role) or self._health_checks[DeviceRole.OTHER]
            return await strategy.check(device, self._clock()), None
        except Exception as e:
            logger.error(f"Health check failed for {device.id} ({device.role.value}): {e}")
            return DeviceStatus.ERROR, str(e) or e.__class__.__name__

    # =========================================================================
    # Heartbeat
    # =========================================================================

    async def heartbeat(self, device_id: str) -> bool:
        """
        Mark a device online now.

        Called by clients that are the device themselves (e.g. a KDS
        screen). May race with a periodic check; the last write wins.

        Returns:
            True if the device exists and was updated.
        """
        try:
            updated = await self._repository.update_status(
                device_id,
                DeviceStatus.ONLINE,
                self._clock(),
            )
        except Exception as e:
            logger.error(f"Heartbeat for {device_id} failed: {e}")
            return False

        if not updated:
            logger.warning(f"Heartbeat from unknown device {device_id}")
        return updated
