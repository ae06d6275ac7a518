"""
Domain layer - Business logic and domain models.

Contains:
- Change calculation
- Device health monitoring
- Cash drawer policy
- Hopper state tracking
"""

from .change_calculator import (
    ChangeCalculator,
    calculate_optimal_change,
    format_change_plan,
    normalize_hoppers,
)
from .health_checks import (
    HealthCheck,
    PrinterProbe,
    FreshnessCheck,
    NfcCapabilityCheck,
    build_health_checks,
)
from .device_health_monitor import DeviceHealthMonitor
from .cash_drawer import (
    CashDrawerPolicy,
    resolve_kick_command,
    validate_settings_update,
)
from .hopper_tracker import HopperTracker


__all__ = [
    # Change
    "ChangeCalculator",
    "calculate_optimal_change",
    "format_change_plan",
    "normalize_hoppers",
    # Device Health
    "HealthCheck",
    "PrinterProbe",
    "FreshnessCheck",
    "NfcCapabilityCheck",
    "build_health_checks",
    "DeviceHealthMonitor",
    # Cash Drawer
    "CashDrawerPolicy",
    "resolve_kick_command",
    "validate_settings_update",
    # Hoppers
    "HopperTracker",
]
