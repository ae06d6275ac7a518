"""
Unit tests for value objects, exceptions and settings.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.exceptions import (
    DeviceError,
    DeviceNotFoundError,
    HardwareError,
    InvalidSettingsError,
    RedisConnectionError,
    RepositoryError,
    SettingsError,
)
from core.value_objects import (
    CashDrawerSettings,
    ChangePlan,
    CommandProfile,
    DenominationQuantity,
    Device,
    DeviceRole,
    DeviceStatus,
    HopperInventory,
    KickCommand,
    Money,
)
from infrastructure.settings import Settings, get_settings


# =============================================================================
# Money
# =============================================================================


class TestMoney:
    """Tests for Money value object."""

    @pytest.mark.parametrize(
        "amount, cents",
        [
            (Decimal("1.30"), 130),
            (1.3, 130),
            ("0.105", 11),
            ("0.104", 10),
            (2, 200),
            ("0", 0),
        ],
    )
    def test_from_amount(self, amount, cents):
        assert Money.from_amount(amount).cents == cents

    @pytest.mark.parametrize("amount", ["abc", "-0.01", "Infinity", float("nan")])
    def test_from_amount_invalid(self, amount):
        with pytest.raises(ValueError):
            Money.from_amount(amount)

    def test_str_and_amount(self):
        money = Money(cents=130)

        assert str(money) == "1.30"
        assert money.amount == Decimal("1.30")

    def test_arithmetic(self):
        assert Money(cents=100) + Money(cents=30) == Money(cents=130)
        assert Money(cents=100) - Money(cents=300) == Money(cents=0)


# =============================================================================
# Device
# =============================================================================


class TestDevice:
    """Tests for Device value object."""

    def test_unknown_role_is_other(self):
        assert DeviceRole.parse("SCALE") is DeviceRole.OTHER
        assert DeviceRole.parse(None) is DeviceRole.OTHER
        assert DeviceRole.parse("KDS") is DeviceRole.KDS

    def test_round_trip(self):
        device = Device(
            id="kds-1",
            role=DeviceRole.KDS,
            status=DeviceStatus.ONLINE,
            last_seen=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            health_check_interval_seconds=15.0,
            name="Kitchen",
        )

        assert Device.from_dict(device.to_dict()) == device

    def test_naive_timestamp_is_utc(self):
        device = Device.from_dict({"id": "kds-1", "last_seen": "2024-05-01T12:00:00"})

        assert device.last_seen == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_defaults_for_sparse_record(self):
        device = Device.from_dict({"id": "x", "status": "sleeping", "ip_address": ""})

        assert device.role is DeviceRole.OTHER
        assert device.status is DeviceStatus.OFFLINE
        assert device.last_seen is None
        assert device.ip_address is None
        assert device.health_check_interval_seconds == 60.0


# =============================================================================
# Change Plan
# =============================================================================


class TestChangePlan:
    """Tests for ChangePlan and hopper snapshots."""

    def test_hopper_denomination_is_decimal(self):
        hopper = HopperInventory(0.2, 3, 5)

        assert hopper.denomination == Decimal("0.2")
        assert hopper.is_low is True

    def test_total_amount(self):
        plan = ChangePlan(
            denominations=(
                DenominationQuantity(Decimal("1.00"), 2),
                DenominationQuantity(Decimal("0.20"), 1),
            ),
            total_coins=3,
        )

        assert plan.total_amount == Decimal("2.20")

    def test_drawer_plan(self):
        plan = ChangePlan.drawer("Out of coins")

        assert plan.feasible is False
        assert plan.use_drawer is True
        assert plan.to_dict()["reason"] == "Out of coins"


# =============================================================================
# Cash Drawer
# =============================================================================


class TestCashDrawerValueObjects:
    """Tests for drawer settings and kick commands."""

    def test_merge_converts_profile(self):
        settings = CashDrawerSettings().merge(command_profile="PULSE")

        assert settings.command_profile is CommandProfile.PULSE

    def test_kick_command_to_dict(self):
        command = KickCommand("EPSON", CommandProfile.ESC_P, data=bytes([0x1B, 0x70, 0, 25, 250]))

        assert command.to_dict()["data"] == [27, 112, 0, 25, 250]


# =============================================================================
# Exceptions
# =============================================================================


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(DeviceNotFoundError, DeviceError)
        assert issubclass(InvalidSettingsError, SettingsError)
        assert issubclass(RedisConnectionError, RepositoryError)
        for error in (DeviceError, SettingsError, RepositoryError):
            assert issubclass(error, HardwareError)

    def test_to_dict(self):
        error = DeviceNotFoundError("Device not found: kds-9", device_id="kds-9")

        assert error.to_dict() == {
            "error": "DeviceNotFoundError",
            "message": "Device not found: kds-9",
            "details": {"device_id": "kds-9"},
        }

    def test_custom_code(self):
        assert HardwareError("x", code="E42").to_dict()["error"] == "E42"


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    """Tests for application settings."""

    def test_singleton(self):
        assert get_settings() is get_settings()

    def test_defaults(self):
        settings = Settings()

        assert settings.change.max_change_amount == Decimal("1000.00")
        assert Decimal("0.05") in settings.change.critical_denominations
        assert settings.monitor.kds_freshness_seconds == 30.0
        assert settings.commands.response_channel == "pos_hardware_commands_response"
