"""
Application layer - Application services and use cases.

Contains:
- Cash drawer service
- API facade
- Command handlers
"""

from .cash_drawer_service import CashDrawerService
from .api_facade import HardwareFacade
from .command_handler import CommandHandler, CommandResponse, hardware_commands


__all__ = [
    "CashDrawerService",
    "HardwareFacade",
    "CommandHandler",
    "CommandResponse",
    "hardware_commands",
]
