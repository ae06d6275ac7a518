"""
Health Checks - Role-specific device probing strategies.

Each device role maps to exactly one strategy. Strategies return a
status; connectivity failures are reported as OFFLINE, anything else
that goes wrong is raised and mapped to ERROR by the monitor.
"""

from __future__ import annotations

import asyncio
import importlib.util
import ipaddress
from datetime import datetime
from typing import Callable, Optional, Protocol

import httpx

from core.value_objects import Device, DeviceRole, DeviceStatus
from infrastructure.settings import MonitorSettings
from loggers import logger


class HealthCheck(Protocol):
    """Protocol for a role health check."""

    async def check(self, device: Device, now: datetime) -> DeviceStatus:
        ...


# =============================================================================
# Printer
# =============================================================================


def printer_url(address: str) -> str:
    """
    Build the probe URL for a printer address.

    Bare IPv6 literals are bracketed; ``host:port`` forms are kept.

    Raises:
        httpx.InvalidURL: If the address cannot form a valid URL.
    """
    host = address.strip()
    try:
        if ipaddress.ip_address(host).version == 6:
            host = f"[{host}]"
    except ValueError:
        pass

    url = f"http://{host}"
    port = httpx.URL(url).port
    if port is not None and not 0 < port < 65536:
        raise httpx.InvalidURL(f"Invalid port: {port}")
    return url


class PrinterProbe:
    """
    Network probe for printers.

    Sends a HEAD request to ``http://<ip_address>`` and cancels it after
    ``timeout`` seconds. Only a 2xx response counts as online.
    """

    def __init__(
        self,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the probe.

        Args:
            timeout: Hard limit for the whole request in seconds.
            client: Shared HTTP client. A short-lived client is created per
                probe when omitted.
        """
        self._timeout = timeout
        self._client = client

    async def check(self, device: Device, now: datetime) -> DeviceStatus:
        if not device.ip_address:
            return DeviceStatus.OFFLINE

        try:
            url = printer_url(device.ip_address)
            response = await asyncio.wait_for(self._head(url), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Printer {device.id} probe timed out after {self._timeout}s")
            return DeviceStatus.OFFLINE
        except httpx.InvalidURL as e:
            logger.warning(f"Printer {device.id} has an unusable address {device.ip_address!r}: {e}")
            return DeviceStatus.OFFLINE
        except (httpx.HTTPError, OSError) as e:
            logger.debug(f"Printer {device.id} unreachable: {e}")
            return DeviceStatus.OFFLINE

        return DeviceStatus.ONLINE if response.is_success else DeviceStatus.OFFLINE

    async def _head(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.head(url)
        async with httpx.AsyncClient() as client:
            return await client.head(url)


# =============================================================================
# Freshness (KDS and default)
# =============================================================================


class FreshnessCheck:
    """Online while ``last_seen`` is younger than the threshold."""

    def __init__(self, threshold_seconds: float) -> None:
        self.threshold_seconds = threshold_seconds

    async def check(self, device: Device, now: datetime) -> DeviceStatus:
        if device.last_seen is None:
            return DeviceStatus.OFFLINE
        age = (now - device.last_seen).total_seconds()
        return DeviceStatus.ONLINE if age < self.threshold_seconds else DeviceStatus.OFFLINE


# =============================================================================
# NFC
# =============================================================================


def nfc_runtime_available() -> bool:
    """Check whether an NFC library is installed in this runtime."""
    return importlib.util.find_spec("nfc") is not None


class NfcCapabilityCheck:
    """Local capability test, not a reachability test."""

    def __init__(self, capability: Callable[[], bool] = nfc_runtime_available) -> None:
        self._capability = capability

    async def check(self, device: Device, now: datetime) -> DeviceStatus:
        return DeviceStatus.ONLINE if self._capability() else DeviceStatus.OFFLINE


# =============================================================================
# Strategy Table
# =============================================================================


def build_health_checks(
    settings: MonitorSettings,
    http_client: Optional[httpx.AsyncClient] = None,
    nfc_capability: Callable[[], bool] = nfc_runtime_available,
) -> dict[DeviceRole, HealthCheck]:
    """
    Build the role to strategy table.

    Args:
        settings: Monitor thresholds and timeouts.
        http_client: Optional shared client for printer probes.
        nfc_capability: Callable reporting NFC availability.

    Returns:
        One strategy per device role.
    """
    return {
        DeviceRole.PRINTER: PrinterProbe(settings.printer_probe_timeout, http_client),
        DeviceRole.KDS: FreshnessCheck(settings.kds_freshness_seconds),
        DeviceRole.NFC_SCANNER: NfcCapabilityCheck(nfc_capability),
        DeviceRole.OTHER: FreshnessCheck(settings.default_freshness_seconds),
    }
