"""
Pytest configuration for POS hardware tests.

Adds the source root to sys.path so that tests can import modules the
same way the service does, and provides in-memory collaborators.
"""

import sys
from dataclasses import replace
from pathlib import Path

import pytest


# Add the pos_hardware directory to sys.path for proper imports
source_root = Path(__file__).parent.parent
if str(source_root) not in sys.path:
    sys.path.insert(0, str(source_root))


from core.value_objects import DeviceStatus  # noqa: E402


class InMemoryDeviceRepository:
    """Device registry kept in dictionaries."""

    def __init__(self, devices=()):
        self.devices = {device.id: device for device in devices}
        self.status_updates = []
        self.health_log = []

    async def list_devices(self):
        return list(self.devices.values())

    async def get_device(self, device_id):
        return self.devices.get(device_id)

    async def update_status(self, device_id, status, last_seen=None):
        device = self.devices.get(device_id)
        if device is None:
            return False
        changes = {"status": DeviceStatus(status)}
        if last_seen is not None:
            changes["last_seen"] = last_seen
        self.devices[device_id] = replace(device, **changes)
        self.status_updates.append((device_id, status, last_seen))
        return True

    async def add_health_log(self, entry):
        self.health_log.append(entry)


class InMemorySettingsStore:
    """Settings store holding one blob."""

    def __init__(self, data=None):
        self.data = data
        self.saved = []

    async def load(self):
        return self.data

    async def save(self, data):
        self.data = dict(data)
        self.saved.append(dict(data))


class FakeHardwareBridge:
    """Hardware event bridge that lets tests emit events."""

    def __init__(self, connected=False):
        self.connected = connected
        self.handlers = {}
        self.connect_calls = 0

    async def connect(self):
        self.connect_calls += 1
        self.connected = True

    def is_connected(self):
        return self.connected

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event, handler):
        if handler in self.handlers.get(event, []):
            self.handlers[event].remove(handler)

    def emit(self, event, payload=None):
        for handler in list(self.handlers.get(event, [])):
            handler(payload if payload is not None else {"type": event})


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def hardware_bridge():
    return FakeHardwareBridge()


@pytest.fixture
def make_repository():
    return InMemoryDeviceRepository
