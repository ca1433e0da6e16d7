# tests/conftest.py
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from backend.lib.eco_village_core.models import Dwelling, DwellingType, Resident, UsageRecord


@pytest.fixture
def community():
    dwellings = [
        Dwelling("d1", "Sunrise Yurt", DwellingType.YURT),
        Dwelling("d2", "Creekside Cabin", DwellingType.CABIN),
    ]
    residents = [
        Resident("r1", "Kyle", "d1", "#10b981"),
        Resident("r2", "Sarah", "d1", "#34d399"),
        Resident("r3", "Marcus", "d2", "#f59e0b"),
    ]
    records = [
        UsageRecord("r1", "2024-01-01", 5.0),
        UsageRecord("r1", "2024-01-02", 3.0),
        UsageRecord("r2", "2024-01-01", 2.0),
        UsageRecord("r3", "2024-01-02", 7.25),
    ]
    return residents, dwellings, records


class FakeVue:
    """Stands in for pyemvue.PyEmVue."""

    def __init__(self, devices=None, login_result=True, login_error=None, devices_error=None,
                 failing_gids=(), values=(1.0, None, 2.5),
                 start_time=datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.devices = devices if devices is not None else []
        self.login_result = login_result
        self.login_error = login_error
        self.devices_error = devices_error
        self.failing_gids = set(failing_gids)
        self.values = list(values)
        self.start_time = start_time
        self.usage_calls = []

    def login(self, username=None, password=None):
        if self.login_error is not None:
            raise self.login_error
        return self.login_result

    def get_devices(self):
        if self.devices_error is not None:
            raise self.devices_error
        return self.devices

    def get_chart_usage(self, channel, start=None, end=None, scale=None, unit=None):
        self.usage_calls.append((channel.device_gid, scale, unit))
        if channel.device_gid in self.failing_gids:
            raise RuntimeError("boom")
        return list(self.values), self.start_time


def make_device(gid, name="", display_name="", channels=1, parent=None):
    return SimpleNamespace(
        device_gid=gid,
        device_name=name,
        display_name=display_name,
        parent_device_gid=parent,
        channels=[SimpleNamespace(device_gid=gid, channel_num=str(i)) for i in range(channels)],
    )
