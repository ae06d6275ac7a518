"""
Cash Drawer Service - Opens the drawer through the print bridge.

Applies the drawer policy, sends the resolved kick command and keeps an
audit trail of every successful open.
"""

from typing import Any, Optional, Union

from core.interfaces import AuditLog, PrintBridge
from core.value_objects import CashEvent, KickCommand
from domain.cash_drawer import CashDrawerPolicy
from loggers import logger


class CashDrawerService:
    """
    Application service for cash drawer opens.

    Results are returned as dictionaries; nothing is raised, so the
    payment flow can always fall back to a manual payout.
    """

    def __init__(
        self,
        policy: CashDrawerPolicy,
        print_bridge: Optional[PrintBridge] = None,
        audit_log: Optional[AuditLog] = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            policy: Cash drawer policy holding the current settings.
            print_bridge: Print-bridge command surface.
            audit_log: Audit trail for drawer opens.
        """
        self._policy = policy
        self._print_bridge = print_bridge
        self._audit_log = audit_log

    async def open_for_event(
        self,
        event: Union[CashEvent, str],
        meta: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Open the drawer for a payment event if the settings ask for it.

        Args:
            event: ``cash_initiated`` or ``cash_completed``.
            meta: Optional order/user identifiers for the audit record.
        """
        if not self._policy.should_auto_open(event):
            return {
                "success": True,
                "message": f"Auto-open not enabled for {getattr(event, 'value', event)}",
                "data": {"opened": False},
            }
        return await self._kick(CashEvent(event).value, meta)

    async def open_manually(
        self,
        reason: str = "manual_open",
        meta: Optional[dict[str, Any]] = None,
        manager_approved: bool = False,
    ) -> dict[str, Any]:
        """
        Open the drawer on cashier request.

        Args:
            reason: Reason recorded in the audit trail.
            meta: Optional order/user identifiers for the audit record.
            manager_approved: Whether the manager approval flow succeeded.
        """
        if self._policy.requires_manager_pin() and not manager_approved:
            logger.warning("Manual drawer open refused: manager approval required")
            return {"success": False, "message": "Manager approval required"}
        return await self._kick(reason, meta)

    async def _kick(self, reason: str, meta: Optional[dict[str, Any]]) -> dict[str, Any]:
        command = self._policy.resolve_kick_command()

        if command.inert:
            logger.warning(f"Drawer kick skipped: {command.reason}")
            return {"success": False, "message": command.reason, "data": {"opened": False}}

        if self._print_bridge is None:
            return {"success": False, "message": "Print bridge not available", "data": {"opened": False}}

        try:
            await self._print_bridge.send_kick(command)
        except Exception as e:
            logger.error(f"Cash drawer kick failed: {e}")
            return {
                "success": False,
                "message": f"Failed to open cash drawer: {e}",
                "data": {"opened": False},
            }

        logger.info(f"Cash drawer opened ({reason}) on {command.printer_name}")
        await self._audit(reason, command, meta or {})
        return {
            "success": True,
            "message": "Drawer kick command sent",
            "data": {"opened": True, "command": command.to_dict()},
        }

    async def _audit(self, reason: str, command: KickCommand, meta: dict[str, Any]) -> None:
        if self._audit_log is None:
            return
        try:
            await self._audit_log.record(
                "cash_drawer.open",
                "cash_drawer",
                actor=meta.get("user_id"),
                entity_id=meta.get("order_id"),
                diff={
                    "reason": reason,
                    "printer_name": command.printer_name,
                    "profile": command.profile.value,
                    "kick_mode": command.kick_mode,
                    "t1": command.t1,
                    "t2": command.t2,
                },
            )
        except Exception as e:
            logger.warning(f"Audit log insert failed: {e}")
