"""
Synthetic data source ("demo mode").

Produces the same community every time: 12 dwellings, 20 residents, and
daily usage shaped by dwelling type, a slow seasonal swing, noise and the
occasional laundry-day spike. The random generator is seeded, so the same
seed and end date always give the same records.
"""
import logging
import math
import random
from datetime import date, timedelta
from typing import List

from backend.lib.eco_village_core.models import (
    CommunityData,
    Dwelling,
    DwellingType,
    Resident,
    UsageRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_SEED = 42

DWELLINGS = (
    Dwelling("d1", "Sunrise Yurt", DwellingType.YURT),
    Dwelling("d2", "Creekside Cabin", DwellingType.CABIN),
    Dwelling("d3", "The Barn", DwellingType.MAIN_HOUSE),
    Dwelling("d4", "Oak Treehouse", DwellingType.TINY_HOME),
    Dwelling("d5", "Garden Studio", DwellingType.TINY_HOME),
    Dwelling("d6", "North Earthship", DwellingType.EARTHSHIP),
    Dwelling("d7", "South Earthship", DwellingType.EARTHSHIP),
    Dwelling("d8", "Hilltop Dome", DwellingType.YURT),
    Dwelling("d9", "Meadow Cottage", DwellingType.CABIN),
    Dwelling("d10", "Forest A-Frame", DwellingType.CABIN),
    Dwelling("d11", "Solar Shed", DwellingType.TINY_HOME),
    Dwelling("d12", "Community Hub", DwellingType.MAIN_HOUSE),
)

RESIDENTS = (
    Resident("r1", "Kyle (You)", "d1", "#10b981"),
    Resident("r2", "Sarah", "d1", "#34d399"),
    Resident("r3", "Marcus", "d2", "#f59e0b"),
    Resident("r4", "Elena", "d2", "#fbbf24"),
    Resident("r5", "The Communes", "d3", "#ef4444"),
    Resident("r6", "Liam", "d4", "#3b82f6"),
    Resident("r7", "Noah", "d5", "#6366f1"),
    Resident("r8", "Emma", "d6", "#8b5cf6"),
    Resident("r9", "Oliver", "d6", "#a78bfa"),
    Resident("r10", "James", "d7", "#ec4899"),
    Resident("r11", "Sophia", "d7", "#f472b6"),
    Resident("r12", "William", "d8", "#14b8a6"),
    Resident("r13", "Lucas", "d9", "#06b6d4"),
    Resident("r14", "Mia", "d9", "#22d3ee"),
    Resident("r15", "Benjamin", "d10", "#f97316"),
    Resident("r16", "Elijah", "d11", "#84cc16"),
    Resident("r17", "Community Kitchen", "d12", "#64748b"),
    Resident("r18", "Guest Room 1", "d12", "#94a3b8"),
    Resident("r19", "Guest Room 2", "d12", "#cbd5e1"),
    Resident("r20", "Workshop", "d12", "#475569"),
)

# typical daily kWh by dwelling type
BASE_USAGE = {
    DwellingType.MAIN_HOUSE: 15.0,
    DwellingType.CABIN: 8.0,
    DwellingType.EARTHSHIP: 4.0,
    DwellingType.YURT: 5.0,
    DwellingType.TINY_HOME: 3.0,
}

SPIKE_PROBABILITY = 0.15
SPIKE_KWH = 3.0
MIN_KWH = 0.5


def base_usage(dwelling_type: DwellingType) -> float:
    return BASE_USAGE.get(dwelling_type, 5.0)


def generate_usage(days: int = 30, today: date = None, seed: int = DEFAULT_SEED) -> List[UsageRecord]:
    """
    One record per resident per day, for `days + 1` days ending on `today`
    (inclusive), oldest day first.
    """
    rng = random.Random(seed)
    today = today or date.today()
    dwelling_types = {d.id: d.type for d in DWELLINGS}

    records = []
    for i in range(days, -1, -1):
        day = (today - timedelta(days=i)).isoformat()
        seasonal_factor = 1 + math.sin(i / 10) * 0.2

        for resident in RESIDENTS:
            base = base_usage(dwelling_types.get(resident.dwelling_id, DwellingType.TINY_HOME))
            noise = rng.random() * 2 - 1
            kwh = (base + noise) * seasonal_factor
            if rng.random() > 1 - SPIKE_PROBABILITY:
                kwh += SPIKE_KWH
            records.append(UsageRecord(
                resident_id=resident.id,
                date=day,
                kwh=max(MIN_KWH, round(kwh, 2)),
            ))
    return records


class SimulationDataSource:
    """
    Drop-in replacement for the live Emporia source. Any credentials are
    accepted; nothing leaves the process.
    """

    name = "simulation"

    def __init__(self, seed: int = DEFAULT_SEED, today: date = None):
        self.seed = seed
        self.today = today

    def login(self, email: str, password: str) -> bool:
        logger.info("Simulation login for %s", email or "<anonymous>")
        return True

    def fetch_community_data(self, days: int = 30) -> CommunityData:
        usage = generate_usage(days=days, today=self.today, seed=self.seed)
        logger.info("Generated %d simulated records for %d residents", len(usage), len(RESIDENTS))
        return CommunityData(residents=RESIDENTS, dwellings=DWELLINGS, usage=tuple(usage))
