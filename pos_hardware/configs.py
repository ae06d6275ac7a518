"""
Configuration module for the hardware coordination service.

Low-level constants shared by logging and the service entry point.
Values can be overridden through environment variables.
"""

import os
from typing import Final, Optional


# =============================================================================
# System Configuration
# =============================================================================

SERVICE_NAME: Final[str] = "pos_hardware"
LOG_DIR: Final[str] = os.getenv("POS_HARDWARE_LOG_DIR", "logs")
LOG_FILE: Final[str] = os.path.join(LOG_DIR, "pos_hardware.log")


# =============================================================================
# Redis Configuration
# =============================================================================

REDIS_HOST: Final[str] = os.getenv("POS_HARDWARE_REDIS_HOST", "localhost")
REDIS_PORT: Final[int] = int(os.getenv("POS_HARDWARE_REDIS_PORT", "6379"))


# =============================================================================
# External Services Configuration
# =============================================================================

# Loki push is disabled unless a URL is configured
LOKI_URL: Final[Optional[str]] = os.getenv("POS_HARDWARE_LOKI_URL") or None


# =============================================================================
# Storage Keys
# =============================================================================

DEVICE_IDS_KEY: Final[str] = "devices"
DEVICE_KEY_PREFIX: Final[str] = "device:"
HEALTH_LOG_KEY_PREFIX: Final[str] = "device_health_log:"
CASH_DRAWER_SETTINGS_KEY: Final[str] = "pos.cashDrawer.settings"
AUDIT_LOG_KEY: Final[str] = "audit_log"


# =============================================================================
# Drawer Kick Bytes
# =============================================================================

ESC: Final[int] = 0x1B
DLE: Final[int] = 0x10
DC4: Final[int] = 0x14
ESC_P_COMMAND: Final[int] = 0x70

# DLE DC4 real-time pulse: fn=1, pulse time in 100 ms units
PULSE_FUNCTION: Final[int] = 0x01
PULSE_TIME_UNITS: Final[int] = 0x05
