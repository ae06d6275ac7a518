"""
Command Handler - Routes Redis commands to API methods.

Provides clean command routing with validation and error handling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Awaitable, Optional

from core.exceptions import HardwareError
from loggers import logger


# Type alias for command handlers
CommandHandlerFunc = Callable[..., Awaitable[dict[str, Any]]]


@dataclass
class CommandResponse:
    """
    Standardized response for command execution.

    Attributes:
        command_id: The ID of the executed command.
        success: Whether the command succeeded.
        message: Human-readable message.
        data: Optional response data.
    """

    command_id: Optional[Any] = None
    success: bool = False
    message: Optional[str] = None
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Convert the response to a dictionary."""
        return {
            "command_id": self.command_id,
            "success": self.success,
            "message": self.message,
            "data": self.data,
        }


@dataclass
class CommandDefinition:
    """
    Definition of a command.

    Attributes:
        name: Command name.
        handler: Handler function.
        required_args: Argument names that must be present.
        optional_args: Argument names passed through when present.
        description: Human-readable description.
    """

    name: str
    handler: CommandHandlerFunc
    required_args: list[str]
    optional_args: list[str] = field(default_factory=list)
    description: str = ""


class CommandHandler:
    """
    Routes commands to their appropriate handlers.

    Provides a clean way to register and dispatch commands
    to their handler methods on the API facade.
    """

    def __init__(self, api: Any) -> None:
        """
        Initialize the command handler.

        Args:
            api: The HardwareFacade instance.
        """
        self._api = api
        self._commands: dict[str, CommandDefinition] = {}
        self._register_default_commands()

    def _register_default_commands(self) -> None:
        """Register all default command handlers."""
        # Device health
        self.register(
            "device_heartbeat",
            self._api.device_heartbeat,
            ["device_id"],
            description="Mark a self-reporting device online",
        )
        self.register(
            "check_device",
            self._api.check_device,
            ["device_id"],
            description="Run one health check now",
        )
        self.register(
            "device_status",
            self._api.device_status,
            [],
            description="List registered devices",
        )
        self.register(
            "device_health_log",
            self._api.device_health_log,
            ["device_id"],
            ["limit"],
            "Get recent health checks for a device",
        )
        self.register(
            "start_monitoring",
            self._api.start_monitoring,
            [],
            description="Start periodic device health checks",
        )
        self.register(
            "stop_monitoring",
            self._api.stop_monitoring,
            [],
            description="Stop periodic device health checks",
        )

        # Change
        self.register(
            "calculate_change",
            self._api.calculate_change,
            ["amount"],
            ["hoppers"],
            "Plan coin change for an amount",
        )

        # Cash drawer
        self.register(
            "get_cash_drawer_settings",
            self._api.get_cash_drawer_settings,
            [],
            description="Get cash drawer settings",
        )
        self.register(
            "update_cash_drawer_settings",
            self._api.update_cash_drawer_settings,
            ["settings"],
            description="Update cash drawer settings",
        )
        self.register(
            "resolve_kick_command",
            self._api.resolve_kick_command,
            [],
            description="Show the drawer kick command for the current settings",
        )
        self.register(
            "open_cash_drawer_for_event",
            self._api.open_cash_drawer_for_event,
            ["event"],
            ["order_id", "user_id"],
            "Open the drawer for a payment event",
        )
        self.register(
            "open_cash_drawer",
            self._api.open_cash_drawer,
            [],
            ["reason", "manager_approved", "order_id", "user_id"],
            "Open the drawer manually",
        )

        # Print bridge
        self.register(
            "print_bridge_status",
            self._api.print_bridge_status,
            [],
            description="Check whether the print agent is reachable",
        )
        self.register(
            "list_printers",
            self._api.list_printers,
            [],
            description="List printers known to the print agent",
        )

        # Status
        self.register(
            "hardware_status",
            self._api.hardware_status,
            [],
            description="Get monitor, hopper and drawer state",
        )

    def register(
        self,
        command_name: str,
        handler: CommandHandlerFunc,
        required_args: list[str],
        optional_args: Optional[list[str]] = None,
        description: str = "",
    ) -> None:
        """
        Register a command handler.

        Args:
            command_name: The name of the command.
            handler: The async handler function.
            required_args: List of required argument names.
            optional_args: List of optional argument names.
            description: Human-readable description.
        """
        self._commands[command_name] = CommandDefinition(
            name=command_name,
            handler=handler,
            required_args=required_args,
            optional_args=optional_args or [],
            description=description,
        )

    def get_available_commands(self) -> list[dict[str, Any]]:
        """Get list of available commands with their descriptions."""
        return [
            {
                "name": cmd.name,
                "required_args": cmd.required_args,
                "optional_args": cmd.optional_args,
                "description": cmd.description,
            }
            for cmd in self._commands.values()
        ]

    async def execute(self, command_data: dict[str, Any]) -> dict[str, Any]:
        """
        Execute a command based on command data.

        Args:
            command_data: Dictionary containing 'command', 'command_id', and 'data'.

        Returns:
            Response dictionary with execution result.
        """
        command = command_data.get("command")
        command_id = command_data.get("command_id")
        data = command_data.get("data", {}) or {}

        response = CommandResponse(command_id=command_id)

        # Validate command exists
        if command not in self._commands:
            logger.warning(f"Unknown command: {command}")
            response.message = f"Unknown command: {command}"
            return response.to_dict()

        definition = self._commands[command]

        # Extract required arguments from data
        kwargs = {arg: data.get(arg) for arg in definition.required_args}

        # Validate required arguments
        missing = [arg for arg in definition.required_args if kwargs.get(arg) is None]
        if missing:
            response.message = f"Missing required arguments: {missing}"
            return response.to_dict()

        kwargs.update(
            {arg: data[arg] for arg in definition.optional_args if data.get(arg) is not None}
        )

        try:
            result = await definition.handler(**kwargs)

            # Update response with result
            if isinstance(result, dict):
                response.success = result.get("success", False)
                response.message = result.get("message")
                response.data = result.get("data")
            else:
                response.success = True
                response.data = result

        except HardwareError as e:
            logger.error(f"Command '{command}' failed: {e.message}")
            response.message = e.message
            response.data = e.to_dict()
        except Exception as e:
            logger.error(f"Error executing command '{command}': {e}")
            response.success = False
            response.message = f"Error: {e}"

        return response.to_dict()


async def hardware_commands(
    command_data: dict[str, Any],
    api: Any,
) -> dict[str, Any]:
    """
    Execute a command on the hardware API.

    This is the main entry point for command execution from Redis pub/sub.

    Args:
        command_data: Dictionary containing command name, ID, and data.
        api: The HardwareFacade instance.

    Returns:
        Response dictionary with execution result.
    """
    handler = CommandHandler(api)
    return await handler.execute(command_data)
