"""
Unit tests for hopper state tracking and bridge event parsing.
"""

from decimal import Decimal

import pytest

from core.value_objects import HopperInventory, HopperStatus
from domain.hopper_tracker import HopperTracker
from event_system import HardwareEvent, HardwareEventType, HopperLevel, parse_hopper_levels


def level_event(*hoppers):
    return {"type": "hopper_level", "deviceId": "hopper-1", "data": {"hoppers": list(hoppers)}}


# =============================================================================
# Event Parsing
# =============================================================================


class TestHardwareEvent:
    """Tests for the bridge event contract."""

    def test_coerce_bridge_json(self):
        event = HardwareEvent.coerce(
            {"type": "jam", "deviceId": "hopper-2", "data": {"code": 7}, "timestamp": 1700000000000}
        )

        assert event.type == HardwareEventType.JAM
        assert event.device_id == "hopper-2"
        assert event.data == {"code": 7}
        assert event.timestamp == 1700000000000

    def test_coerce_defaults(self):
        event = HardwareEvent.coerce({"type": "connected"})

        assert event.device_id == "bridge"
        assert event.data == {}

    def test_hopper_level_accepts_both_key_styles(self):
        camel = HopperLevel.from_dict({"denomination": 0.2, "currentLevel": 30, "lowThreshold": 10})
        snake = HopperLevel.from_dict({"denomination": 0.2, "current_level": 30, "low_threshold": 10})

        assert camel == snake

    def test_parse_hopper_levels(self):
        event = HardwareEvent.coerce(
            level_event({"denomination": 0.5, "currentLevel": 3, "lowThreshold": 5, "hopperId": "h1"})
        )

        levels = parse_hopper_levels(event)

        assert len(levels) == 1
        assert levels[0].hopper_id == "h1"
        assert levels[0].is_low is True
        assert levels[0].to_inventory() == HopperInventory(Decimal("0.5"), 3, 5)

    def test_negative_level_clamped(self):
        level = HopperLevel(denomination=0.1, current_level=-2)

        assert level.to_inventory().available == 0


# =============================================================================
# Hopper Tracker
# =============================================================================


class TestHopperTracker:
    """Tests for the hopper snapshot kept from bridge events."""

    def test_attach_and_detach(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)

        tracker.attach()
        tracker.attach()

        assert {event: len(handlers) for event, handlers in hardware_bridge.handlers.items()} == {
            "connected": 1,
            "disconnected": 1,
            "hopper_level": 1,
            "jam": 1,
        }

        tracker.detach()

        assert all(not handlers for handlers in hardware_bridge.handlers.values())

    def test_snapshot_empty_before_first_report(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)

        assert tracker.snapshot() == []
        assert tracker.hopper_status is HopperStatus.OK

    def test_level_report_replaces_snapshot(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)
        tracker.attach()

        hardware_bridge.emit("hopper_level", level_event(
            {"denomination": 1.0, "currentLevel": 50, "lowThreshold": 10},
            {"denomination": 0.2, "currentLevel": 30, "lowThreshold": 10},
        ))
        hardware_bridge.emit("hopper_level", level_event(
            {"denomination": 0.5, "currentLevel": 20, "lowThreshold": 5},
        ))

        assert tracker.snapshot() == [HopperInventory(Decimal("0.5"), 20, 5)]
        assert tracker.hopper_status is HopperStatus.OK

    def test_low_hopper_sets_low(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)
        tracker.attach()

        hardware_bridge.emit("hopper_level", level_event(
            {"denomination": 0.1, "currentLevel": 2, "lowThreshold": 10},
            {"denomination": 1.0, "currentLevel": 50, "lowThreshold": 10},
        ))

        assert tracker.hopper_status is HopperStatus.LOW

    def test_jam_holds_until_next_level_report(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)
        tracker.attach()

        hardware_bridge.emit("jam", {"type": "jam", "data": {"hopperId": "h1"}})
        assert tracker.hopper_status is HopperStatus.JAM

        hardware_bridge.emit("hopper_level", level_event(
            {"denomination": 1.0, "currentLevel": 50, "lowThreshold": 10},
        ))
        assert tracker.hopper_status is HopperStatus.OK

    def test_malformed_report_keeps_previous_snapshot(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)
        tracker.attach()
        hardware_bridge.emit("hopper_level", level_event(
            {"denomination": 1.0, "currentLevel": 50, "lowThreshold": 10},
        ))

        hardware_bridge.emit("hopper_level", level_event({"currentLevel": 5}))
        hardware_bridge.emit("hopper_level", level_event({"denomination": "abc", "currentLevel": 5}))

        assert tracker.snapshot() == [HopperInventory(Decimal("1.0"), 50, 10)]

    def test_connection_events(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)
        tracker.attach()

        hardware_bridge.emit("connected")
        assert tracker.is_connected is True

        hardware_bridge.emit("disconnected")
        assert tracker.is_connected is False

    @pytest.mark.asyncio
    async def test_connect(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)

        assert await tracker.connect() is True
        assert hardware_bridge.connect_calls == 1
        assert tracker.is_connected is True

    @pytest.mark.asyncio
    async def test_connect_failure_is_reported(self, hardware_bridge):
        async def refuse():
            raise ConnectionError("bridge offline")

        hardware_bridge.connect = refuse
        tracker = HopperTracker(hardware_bridge)

        assert await tracker.connect() is False
        assert tracker.is_connected is False

    def test_to_dict(self, hardware_bridge):
        tracker = HopperTracker(hardware_bridge)
        tracker.attach()
        hardware_bridge.emit("hopper_level", level_event(
            {"denomination": 0.2, "currentLevel": 4, "lowThreshold": 10},
        ))

        assert tracker.to_dict() == {
            "connected": False,
            "hopper_status": "low",
            "hoppers": [{"denomination": "0.2", "available": 4, "low_threshold": 10}],
        }
