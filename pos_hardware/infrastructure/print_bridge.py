"""
Print bridge client over Redis pub/sub.

Publishes kick-command descriptors to the channel the local print agent
listens on. Queries that need an answer publish a request carrying a
``reply_to`` list key; the agent pushes its JSON reply onto that list.
"""

import json
import uuid

from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.exceptions import PrintBridgeError
from core.value_objects import KickCommand, PrintBridgeStatus
from loggers import logger


DEFAULT_PRINT_CHANNEL = "print_bridge_commands"
REPLY_KEY_PREFIX = "print_bridge:reply:"


class RedisPrintBridge:
    """Sends drawer-kick commands and queries to the print agent."""

    def __init__(
        self,
        redis: Redis,
        channel: str = DEFAULT_PRINT_CHANNEL,
        reply_timeout: float = 3.0,
    ) -> None:
        self._redis = redis
        self.channel = channel
        self.reply_timeout = reply_timeout

    async def send_kick(self, command: KickCommand) -> None:
        """
        Publish a kick command.

        Raises:
            PrintBridgeError: If the command is inert, publishing fails or
                no print agent is subscribed.
        """
        if command.inert:
            raise PrintBridgeError(f"Refusing to send inert command: {command.reason}")

        receivers = await self._publish({"command": "kick_cash_drawer", "data": command.to_dict()})
        if not receivers:
            raise PrintBridgeError("No print agent is listening")
        logger.debug(f"Kick command published to {self.channel}")

    async def status(self) -> PrintBridgeStatus:
        """
        Check print agent reachability from the channel subscriber count.

        Returns:
            CONNECTED when an agent is subscribed, DISCONNECTED when none is,
            UNAVAILABLE when Redis itself cannot be queried.
        """
        try:
            counts = await self._redis.pubsub_numsub(self.channel)
        except (RedisError, ConnectionError) as e:
            logger.warning(f"Print bridge status unavailable: {e}")
            return PrintBridgeStatus.UNAVAILABLE

        subscribers = sum(count for _, count in counts)
        return PrintBridgeStatus.CONNECTED if subscribers else PrintBridgeStatus.DISCONNECTED

    async def list_printers(self) -> list[str]:
        """
        Ask the print agent for its installed printers.

        Returns an empty list when no agent answers in time.
        """
        reply_key = f"{REPLY_KEY_PREFIX}{uuid.uuid4().hex}"
        try:
            receivers = await self._publish({"command": "list_printers", "reply_to": reply_key})
            if not receivers:
                logger.warning("No print agent is listening for list_printers")
                return []
            reply = await self._redis.blpop([reply_key], timeout=self.reply_timeout)
        except (PrintBridgeError, RedisError, ConnectionError) as e:
            logger.error(f"Failed to list printers: {e}")
            return []

        if reply is None:
            logger.warning(f"Print agent did not answer within {self.reply_timeout}s")
            return []

        _, payload = reply
        try:
            data = json.loads(payload)
        except ValueError as e:
            logger.error(f"Malformed printer list from print agent: {e}")
            return []

        printers = data.get("printers", []) if isinstance(data, dict) else data
        if isinstance(printers, str):
            printers = [printers]
        if not isinstance(printers, list):
            logger.error(f"Unexpected printer list from print agent: {printers!r}")
            return []
        return [str(name) for name in printers]

    async def _publish(self, message: dict) -> int:
        try:
            return await self._redis.publish(self.channel, json.dumps(message))
        except (RedisError, ConnectionError) as e:
            raise PrintBridgeError(f"Print bridge publish failed: {e}")
