# backend/lib/eco_village_core/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class DwellingType(str, Enum):
    TINY_HOME = "Tiny Home"
    YURT = "Yurt"
    CABIN = "Cabin"
    MAIN_HOUSE = "Main House"
    EARTHSHIP = "Earthship"


@dataclass(frozen=True)
class Dwelling:
    id: str
    name: str
    type: DwellingType

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "type": self.type.value}


@dataclass(frozen=True)
class Resident:
    id: str
    name: str
    dwelling_id: str
    color: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "dwelling_id": self.dwelling_id,
            "color": self.color,
        }


@dataclass(frozen=True)
class UsageRecord:
    resident_id: str
    date: str  # YYYY-MM-DD
    kwh: float


@dataclass(frozen=True)
class CommunityData:
    """Everything one login produces; loaded and discarded as a unit."""
    residents: Tuple[Resident, ...] = ()
    dwellings: Tuple[Dwelling, ...] = ()
    usage: Tuple[UsageRecord, ...] = ()


@dataclass
class DailyUsage:
    date: str
    usage: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"date": self.date, "usage": dict(self.usage)}


@dataclass
class MonthlyUsage:
    month: str  # YYYY-MM
    usage: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"month": self.month, "usage": dict(self.usage)}


@dataclass
class ResidentTotal:
    id: str
    name: str
    total: float
    color: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "total": self.total, "color": self.color}
