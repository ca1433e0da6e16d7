from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Sequence

from .models import DailyUsage, Dwelling, MonthlyUsage, Resident, ResidentTotal, UsageRecord

ALL_DWELLINGS = "all"
UNKNOWN_COLOR = "#ccc"

HIGH_DAILY_KWH = 10.0
MODERATE_DAILY_KWH = 6.0


def round_kwh(value: float, places: str = "0.1") -> float:
    """Round half-up for display (avoids banker's rounding)."""
    return float(Decimal(str(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def filter_by_dwelling(residents: Iterable[Resident], dwelling_id: str) -> List[Resident]:
    """
    Returns every resident for the 'all' sentinel, otherwise the residents
    living in exactly that dwelling. An unknown dwelling gives an empty list.
    """
    if dwelling_id == ALL_DWELLINGS:
        return list(residents)
    return [r for r in residents if r.dwelling_id == dwelling_id]


def filter_records_by_residents(records: Iterable[UsageRecord],
                                resident_ids: Iterable[str]) -> List[UsageRecord]:
    wanted = set(resident_ids)
    return [rec for rec in records if rec.resident_id in wanted]


def to_daily_series(records: Iterable[UsageRecord]) -> List[DailyUsage]:
    """
    One row per distinct date, ascending. A resident without a record on a
    date has no key in that row; charts draw a gap there, not a zero.

    YYYY-MM-DD is fixed width so sorting the strings sorts the dates.
    """
    grouped: Dict[str, DailyUsage] = {}
    for rec in records:
        row = grouped.get(rec.date)
        if row is None:
            row = grouped[rec.date] = DailyUsage(date=rec.date)
        # duplicate (resident, date) pairs: last one wins
        row.usage[rec.resident_id] = rec.kwh
    return [grouped[d] for d in sorted(grouped)]


def to_monthly_series(records: Iterable[UsageRecord]) -> List[MonthlyUsage]:
    """
    Sums usage per resident per calendar month (YYYY-MM), ascending.
    """
    monthly: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for rec in records:
        month = rec.date[:7]
        monthly[month][rec.resident_id] += rec.kwh
    return [MonthlyUsage(month=m, usage=dict(monthly[m])) for m in sorted(monthly)]


def to_resident_totals(records: Iterable[UsageRecord],
                       residents: Iterable[Resident]) -> List[ResidentTotal]:
    """
    Total kWh per resident, largest first.

    Sums are kept at full precision and rounded to one decimal only when the
    row is built. Residents with equal totals keep the order in which they
    first appear in `records`. An id with no matching resident is shown with
    the raw id as its name and a neutral colour.
    """
    totals: Dict[str, float] = defaultdict(float)
    for rec in records:
        totals[rec.resident_id] += rec.kwh

    lookup = {r.id: r for r in residents}
    rows = []
    for resident_id, total in totals.items():
        resident = lookup.get(resident_id)
        rows.append(ResidentTotal(
            id=resident_id,
            name=resident.name if resident else resident_id,
            total=round_kwh(total),
            color=resident.color if resident else UNKNOWN_COLOR,
        ))
    # sorted() is stable, so ties stay in encounter order
    return sorted(rows, key=lambda row: row.total, reverse=True)


def efficiency_rating(daily_avg: float) -> str:
    if daily_avg > HIGH_DAILY_KWH:
        return "High"
    if daily_avg > MODERATE_DAILY_KWH:
        return "Moderate"
    return "Efficient"


@dataclass
class BreakdownRow:
    id: str
    name: str
    dwelling_name: Optional[str]
    dwelling_type: Optional[str]
    total: float
    daily_avg: float
    efficiency: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "dwelling_name": self.dwelling_name,
            "dwelling_type": self.dwelling_type,
            "total": self.total,
            "daily_avg": self.daily_avg,
            "efficiency": self.efficiency,
        }


def community_breakdown(totals: Sequence[ResidentTotal],
                        residents: Iterable[Resident],
                        dwellings: Iterable[Dwelling],
                        days: int = 30) -> List[BreakdownRow]:
    """
    Rows for the community breakdown table, in the order of `totals`.
    The daily average spreads each total over the whole reporting window.
    """
    resident_lookup = {r.id: r for r in residents}
    dwelling_lookup = {d.id: d for d in dwellings}
    rows = []
    for item in totals:
        resident = resident_lookup.get(item.id)
        dwelling = dwelling_lookup.get(resident.dwelling_id) if resident else None
        daily_avg = round_kwh(item.total / days) if days > 0 else 0.0
        rows.append(BreakdownRow(
            id=item.id,
            name=item.name,
            dwelling_name=dwelling.name if dwelling else None,
            dwelling_type=dwelling.type.value if dwelling else None,
            total=item.total,
            daily_avg=daily_avg,
            efficiency=efficiency_rating(daily_avg),
        ))
    return rows


def overview(totals: Sequence[ResidentTotal], residents: Sequence[Resident]) -> dict:
    """
    Headline numbers: total consumption (whole kWh), number of meters in
    view, and the biggest consumer.
    """
    total = sum(item.total for item in totals)
    return {
        "total_consumption": round_kwh(total, "1"),
        "active_meters": len(residents),
        "highest_user": totals[0].name if totals else "N/A",
    }
