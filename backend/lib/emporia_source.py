"""
=============================================================================
EMPORIA SOURCE - Live smart-meter data from the Emporia Vue cloud
=============================================================================

The Emporia API groups meters as devices, each with one or more channels
(channel 0 is normally the mains). This module flattens that hierarchy
into the three record types the dashboard works with:

    device  ->  Dwelling ("d-<gid>") + Resident ("<gid>")
    channel 0 daily kWh  ->  one UsageRecord per day

Usage for every resident is fetched in parallel. One resident failing does
not stop the others; that resident simply has no records.
=============================================================================
"""

import copy
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import requests
from botocore.exceptions import ConnectTimeoutError, EndpointConnectionError
from pyemvue import PyEmVue
from pyemvue.enums import Scale, Unit

from backend.lib.eco_village_core.errors import (
    AuthError,
    NotAuthenticatedError,
    PerResidentFetchError,
    ServiceUnreachableError,
)
from backend.lib.eco_village_core.models import (
    CommunityData,
    Dwelling,
    DwellingType,
    Resident,
    UsageRecord,
)

logger = logging.getLogger(__name__)

# colours handed out to meters in discovery order
COLOR_PALETTE = (
    '#10b981', '#34d399', '#f59e0b', '#fbbf24', '#ef4444',
    '#3b82f6', '#6366f1', '#8b5cf6', '#a78bfa', '#ec4899',
    '#f472b6', '#14b8a6', '#06b6d4', '#22d3ee', '#f97316',
    '#84cc16', '#64748b', '#94a3b8', '#cbd5e1', '#475569',
)

UNREACHABLE_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    EndpointConnectionError,
    ConnectTimeoutError,
)


def palette_color(index: int) -> str:
    return COLOR_PALETTE[index % len(COLOR_PALETTE)]


def location_name(device) -> Optional[str]:
    """Display name of the location the device is installed at, if any."""
    return getattr(device, 'display_name', None) or None


def merge_duplicate_devices(devices) -> list:
    """
    get_devices() can list one device_gid several times, each entry carrying
    some of its channels. Collapse them into one device per gid, channels
    concatenated in listing order. Input objects are not modified.
    """
    merged = {}
    for device in devices:
        gid = device.device_gid
        channels = list(getattr(device, 'channels', None) or [])
        if gid in merged:
            merged[gid].channels.extend(channels)
        else:
            entry = copy.copy(device)
            entry.channels = channels
            merged[gid] = entry
    return list(merged.values())


def map_devices(devices) -> Tuple[List[Resident], List[Dwelling], Dict[str, object]]:
    """
    Map top-level devices to residents and dwellings, one pair per device_gid.

    Sub-devices (anything with a parent device) are skipped. Returns the
    residents, the dwellings, and the device behind each resident id.
    """
    residents = []
    dwellings = []
    device_by_resident = {}

    top_level = merge_duplicate_devices(
        d for d in devices if not getattr(d, 'parent_device_gid', None)
    )
    for index, device in enumerate(top_level):
        gid = str(device.device_gid)
        name = getattr(device, 'device_name', None) or f"Meter {gid}"
        dwelling_id = f"d-{gid}"

        dwellings.append(Dwelling(
            id=dwelling_id,
            name=location_name(device) or name,
            type=DwellingType.TINY_HOME,
        ))
        residents.append(Resident(
            id=gid,
            name=name,
            dwelling_id=dwelling_id,
            color=palette_color(index),
        ))
        device_by_resident[gid] = device

    return residents, dwellings, device_by_resident


def usage_to_records(resident_id: str, values, start_time: datetime) -> List[UsageRecord]:
    """
    Turn a list of daily values into records. The i-th value belongs to the
    day `start_time + i days`; missing values (None) count as 0.
    """
    if start_time.tzinfo is not None:
        start_time = start_time.astimezone(timezone.utc)
    anchor = start_time.date()
    return [
        UsageRecord(
            resident_id=resident_id,
            date=(anchor + timedelta(days=idx)).isoformat(),
            kwh=float(kwh or 0),
        )
        for idx, kwh in enumerate(values or [])
    ]


class EmporiaDataSource:
    """
    Live data source backed by the pyemvue client.

    Usage:
        source = EmporiaDataSource()
        source.login("me@example.com", "secret")
        data = source.fetch_community_data(days=30)
    """

    name = "emporia"

    def __init__(self, client_factory=PyEmVue, max_workers: int = None):
        self.client_factory = client_factory
        self.max_workers = max_workers or int(os.getenv('EMPORIA_MAX_WORKERS', '8'))
        self.client = None
        self.email = None

    @property
    def authenticated(self) -> bool:
        return self.client is not None

    def login(self, email: str, password: str) -> bool:
        """
        Exchange credentials with Emporia.

        Raises:
            ServiceUnreachableError: the Emporia endpoints could not be reached
            AuthError: credentials were rejected or the exchange failed
        """
        client = self.client_factory()
        try:
            ok = client.login(username=email, password=password)
        except UNREACHABLE_ERRORS as e:
            logger.error("Emporia unreachable during login: %s", e)
            raise ServiceUnreachableError() from e
        except Exception as e:
            logger.error("Emporia login failed for %s: %s", email, e)
            raise AuthError(f"Failed to login: {e}") from e

        if not ok:
            raise AuthError("Failed to login. Please check credentials.")

        self.client = client
        self.email = email
        logger.info("Logged in to Emporia as %s", email)
        return True

    def logout(self):
        self.client = None
        self.email = None

    def fetch_resident_usage(self, resident: Resident, device, start: datetime, end: datetime) -> List[UsageRecord]:
        channels = getattr(device, 'channels', None) or []
        if not channels:
            logger.info("Device %s has no channels; no usage for %s", resident.id, resident.name)
            return []
        # channel 0 is the mains
        values, start_time = self.client.get_chart_usage(
            channels[0], start, end, scale=Scale.DAY.value, unit=Unit.KWH.value
        )
        if not isinstance(values, list) or start_time is None:
            return []
        return usage_to_records(resident.id, values, start_time)

    def fetch_community_data(self, days: int = 30) -> CommunityData:
        """
        Enumerate devices once, then fetch the last `days` days of daily kWh
        for every resident concurrently.

        The batch waits for every fetch. Failures are logged per resident and
        leave that resident with zero records.

        Raises:
            NotAuthenticatedError: login() has not succeeded
            ServiceUnreachableError / AuthError: the device list could not be loaded
        """
        if not self.authenticated:
            raise NotAuthenticatedError("Not logged in")

        try:
            devices = self.client.get_devices() or []
        except UNREACHABLE_ERRORS as e:
            logger.error("Emporia unreachable while listing devices: %s", e)
            raise ServiceUnreachableError() from e
        except Exception as e:
            logger.error("Error fetching Emporia devices: %s", e)
            raise AuthError(f"Failed to load devices: {e}") from e

        residents, dwellings, device_by_resident = map_devices(devices)
        logger.info("Found %d Emporia devices (%d top-level)", len(devices), len(residents))

        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)

        usage_by_resident: Dict[str, List[UsageRecord]] = {}
        if residents:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_resident = {
                    executor.submit(self.fetch_resident_usage, r, device_by_resident[r.id], start, end): r
                    for r in residents
                }
                for future in as_completed(future_to_resident):
                    resident = future_to_resident[future]
                    try:
                        usage_by_resident[resident.id] = future.result()
                    except Exception as e:
                        err = PerResidentFetchError(resident.id, e)
                        logger.warning("Failed to fetch usage for %s: %s", resident.name, err)
                        usage_by_resident[resident.id] = []

        usage = [rec for r in residents for rec in usage_by_resident.get(r.id, [])]
        logger.info("Fetched %d usage records from Emporia", len(usage))
        return CommunityData(residents=tuple(residents), dwellings=tuple(dwellings), usage=tuple(usage))
