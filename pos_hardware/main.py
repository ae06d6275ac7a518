"""
POS Hardware Service - Main entry point.

Builds the hardware layer from settings, starts device monitoring and
serves commands over Redis pub/sub.
"""

import asyncio
import json

import httpx
from redis.asyncio import Redis

from application.api_facade import HardwareFacade
from application.command_handler import hardware_commands
from infrastructure.settings import Settings, get_settings
from loggers import logger


# =============================================================================
# Redis Command Listener
# =============================================================================


async def listen_to_redis(redis: Redis, api: HardwareFacade, settings: Settings) -> None:
    """
    Listen for commands on Redis pub/sub and process them.

    Args:
        redis: Redis client instance.
        api: HardwareFacade instance for command execution.
        settings: Application settings.
    """
    command_channel = settings.commands.command_channel
    response_channel = settings.commands.response_channel

    pubsub = redis.pubsub()
    await pubsub.subscribe(command_channel)
    logger.info(f"Listening for commands on channel: {command_channel}")

    async for message in pubsub.listen():
        if message.get("type") != "message":
            continue

        raw_data = message.get("data")

        # Handle ping messages
        if raw_data == "ping":
            continue

        try:
            command = json.loads(raw_data)
            logger.info(f"Received command: {command}")

            response = await hardware_commands(command, api)

            await redis.publish(response_channel, json.dumps(response, default=str))
            logger.info(f"Response sent to {response_channel}: {response}")

        except json.JSONDecodeError as e:
            logger.error(f"Command parsing error: {e}")
        except Exception as e:
            logger.error(f"Unexpected error processing command: {e}")


# =============================================================================
# Main Entry Point
# =============================================================================


async def main() -> None:
    """
    Main entry point for the POS hardware service.

    Connects to Redis, starts the hardware layer and runs the command
    listener until cancelled.
    """
    settings = get_settings()

    redis = Redis(
        host=settings.redis.host,
        port=settings.redis.port,
        decode_responses=settings.redis.decode_responses,
    )

    async with httpx.AsyncClient() as http_client:
        api = HardwareFacade(redis, http_client=http_client)
        await api.start()
        try:
            await listen_to_redis(redis, api, settings)
        finally:
            await api.shutdown()
            await redis.aclose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
