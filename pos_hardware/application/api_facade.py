"""
API Facade - Unified interface for the POS hardware layer.

Wires the device health monitor, change calculator and cash drawer
policy behind one set of command-friendly methods.
"""

from typing import Any, Optional

import httpx
from redis.asyncio import Redis

from application.cash_drawer_service import CashDrawerService
from core.exceptions import DeviceNotFoundError, HardwareError, InvalidSettingsError
from core.interfaces import HardwareEventBridge, PrintBridge
from core.value_objects import HopperInventory, PrintBridgeStatus
from domain.cash_drawer import CashDrawerPolicy
from domain.change_calculator import ChangeCalculator, format_change_plan
from domain.device_health_monitor import Clock, DeviceHealthMonitor, utc_now
from domain.health_checks import build_health_checks
from domain.hopper_tracker import HopperTracker
from infrastructure.print_bridge import RedisPrintBridge
from infrastructure.redis_repository import (
    RedisAuditLog,
    RedisDeviceRepository,
    RedisSettingsStore,
)
from infrastructure.settings import get_settings
from loggers import logger


def _parse_hoppers(items: list[dict[str, Any]]) -> list[HopperInventory]:
    hoppers = []
    for item in items:
        available = item.get("available", item.get("currentLevel", item.get("current_level", 0)))
        threshold = item.get("low_threshold", item.get("lowThreshold", 0))
        hoppers.append(
            HopperInventory(
                denomination=item["denomination"],
                available=int(available),
                low_threshold=int(threshold or 0),
            )
        )
    return hoppers


class HardwareFacade:
    """
    Facade for the POS hardware API.

    Every public coroutine returns ``{"success", "message", "data"}`` so
    it can be routed by the command handler unchanged.
    """

    def __init__(
        self,
        redis: Redis,
        print_bridge: Optional[PrintBridge] = None,
        hardware_bridge: Optional[HardwareEventBridge] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = utc_now,
    ) -> None:
        """
        Initialize the facade.

        Args:
            redis: Redis client instance.
            print_bridge: Print-bridge client. Defaults to Redis pub/sub.
            hardware_bridge: Coin hopper bridge, if one is attached.
            http_client: Shared client for printer probes.
            clock: Returns the current timezone-aware time.
        """
        settings = get_settings()

        self._devices = RedisDeviceRepository(redis)
        self.monitor = DeviceHealthMonitor(
            self._devices,
            build_health_checks(settings.monitor, http_client),
            clock,
        )
        self.change_calculator = ChangeCalculator(
            settings.change.critical_denominations,
            settings.change.max_change_amount,
        )
        self.print_bridge = print_bridge if print_bridge is not None else RedisPrintBridge(redis)
        self.cash_drawer_policy = CashDrawerPolicy(RedisSettingsStore(redis))
        self.cash_drawer = CashDrawerService(
            self.cash_drawer_policy,
            self.print_bridge,
            RedisAuditLog(redis),
        )
        self.hopper_tracker = HopperTracker(hardware_bridge) if hardware_bridge else None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Load drawer settings, connect the hopper bridge and start monitoring."""
        await self.cash_drawer_policy.load_settings()
        if self.hopper_tracker is not None:
            await self.hopper_tracker.connect()
        await self.monitor.start_monitoring()
        logger.info("POS hardware layer started")

    async def shutdown(self) -> None:
        """Stop monitoring and detach from the hopper bridge."""
        try:
            await self.monitor.shutdown()
            if self.hopper_tracker is not None:
                self.hopper_tracker.detach()
            logger.info("POS hardware layer shut down successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")

    # =========================================================================
    # Device Health
    # =========================================================================

    async def start_monitoring(self) -> dict[str, Any]:
        await self.monitor.start_monitoring()
        return {
            "success": self.monitor.is_monitoring,
            "message": "Monitoring started" if self.monitor.is_monitoring else "Device registry unavailable",
            "data": {"devices": sorted(self.monitor.monitored_device_ids)},
        }

    async def stop_monitoring(self) -> dict[str, Any]:
        self.monitor.stop_monitoring()
        return {"success": True, "message": "Monitoring stopped", "data": None}

    async def device_heartbeat(self, device_id: str) -> dict[str, Any]:
        """
        Record a heartbeat from a device that reports on its own.

        Args:
            device_id: Registered device id.
        """
        if not await self.monitor.heartbeat(device_id):
            error = DeviceNotFoundError(f"Device not found: {device_id}", device_id=device_id)
            return {"success": False, "message": error.message, "data": error.to_dict()}
        return {"success": True, "message": "Heartbeat recorded", "data": {"device_id": device_id}}

    async def check_device(self, device_id: str) -> dict[str, Any]:
        """Run one health check now."""
        status = await self.monitor.check_device(device_id)
        if status is None:
            return {"success": False, "message": f"Device not available: {device_id}", "data": None}
        return {
            "success": True,
            "message": f"Device {device_id} is {status.value}",
            "data": {"device_id": device_id, "status": status.value},
        }

    async def device_status(self) -> dict[str, Any]:
        """List registered devices with their cached status."""
        try:
            devices = await self._devices.list_devices()
        except HardwareError as e:
            return {"success": False, "message": e.message, "data": e.to_dict()}
        return {
            "success": True,
            "message": f"{len(devices)} devices",
            "data": [device.to_dict() for device in devices],
        }

    async def device_health_log(self, device_id: str, limit: int = 50) -> dict[str, Any]:
        try:
            entries = await self._devices.get_health_log(device_id, int(limit))
        except HardwareError as e:
            return {"success": False, "message": e.message, "data": e.to_dict()}
        return {"success": True, "message": None, "data": entries}

    # =========================================================================
    # Change
    # =========================================================================

    async def calculate_change(
        self,
        amount: Any,
        hoppers: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        """
        Plan change for an amount.

        Args:
            amount: Change due in currency units.
            hoppers: Explicit inventory. Defaults to the latest hopper
                snapshot reported by the bridge.
        """
        if hoppers is not None:
            try:
                inventory = _parse_hoppers(hoppers)
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                return {"success": False, "message": f"Invalid hopper inventory: {e}", "data": None}
        elif self.hopper_tracker is not None:
            inventory = self.hopper_tracker.snapshot()
        else:
            inventory = []

        plan = self.change_calculator.calculate(amount, inventory)
        return {
            "success": plan.feasible,
            "message": format_change_plan(plan),
            "data": plan.to_dict(),
        }

    # =========================================================================
    # Cash Drawer
    # =========================================================================

    async def get_cash_drawer_settings(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": None,
            "data": self.cash_drawer_policy.get_settings().to_dict(),
        }

    async def update_cash_drawer_settings(self, settings: dict[str, Any]) -> dict[str, Any]:
        """
        Apply a partial settings update.

        Args:
            settings: Changed fields, camelCase or snake_case keys.
        """
        try:
            updated = await self.cash_drawer_policy.update_settings(settings)
        except InvalidSettingsError as e:
            return {"success": False, "message": e.message, "data": e.to_dict()}
        except HardwareError as e:
            logger.error(f"Failed to save cash drawer settings: {e.message}")
            return {"success": False, "message": e.message, "data": e.to_dict()}
        return {"success": True, "message": "Settings saved", "data": updated.to_dict()}

    async def resolve_kick_command(self) -> dict[str, Any]:
        command = self.cash_drawer_policy.resolve_kick_command()
        return {
            "success": not command.inert,
            "message": command.reason,
            "data": command.to_dict(),
        }

    async def open_cash_drawer_for_event(
        self,
        event: str,
        order_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        return await self.cash_drawer.open_for_event(
            event,
            {"order_id": order_id, "user_id": user_id},
        )

    async def open_cash_drawer(
        self,
        reason: str = "manual_open",
        manager_approved: bool = False,
        order_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> dict[str, Any]:
        return await self.cash_drawer.open_manually(
            reason,
            {"order_id": order_id, "user_id": user_id},
            bool(manager_approved),
        )

    # =========================================================================
    # Print Bridge
    # =========================================================================

    async def print_bridge_status(self) -> dict[str, Any]:
        status = await self.print_bridge.status()
        connected = status is PrintBridgeStatus.CONNECTED
        return {
            "success": connected,
            "message": None if connected else f"Print agent {status.value}",
            "data": {"status": status.value},
        }

    async def list_printers(self) -> dict[str, Any]:
        """Printer names for choosing the drawer's printer."""
        printers = await self.print_bridge.list_printers()
        if not printers:
            return {
                "success": False,
                "message": "No printers found. Make sure the print agent is running",
                "data": [],
            }
        return {"success": True, "message": f"Found {len(printers)} printers", "data": printers}

    # =========================================================================
    # Status
    # =========================================================================

    async def hardware_status(self) -> dict[str, Any]:
        """Summary of monitor, hopper, drawer and print agent state."""
        bridge_status = await self.print_bridge.status()
        return {
            "success": True,
            "message": None,
            "data": {
                "monitoring": self.monitor.is_monitoring,
                "monitored_devices": sorted(self.monitor.monitored_device_ids),
                "hoppers": self.hopper_tracker.to_dict() if self.hopper_tracker else None,
                "cash_drawer": self.cash_drawer_policy.get_settings().to_dict(),
                "print_bridge": bridge_status.value,
            },
        }
