# backend/lib/eco_village_core/io.py
import csv
from io import StringIO
from typing import Iterable

from .models import Dwelling, Resident, UsageRecord

CSV_HEADER = ["Date", "Resident", "Dwelling", "kWh"]
EXPORT_FILENAME = "eco_village_usage.csv"


def format_kwh(kwh: float) -> str:
    """Whole numbers without a trailing '.0', everything else as repr."""
    value = float(kwh)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def to_csv_string(records: Iterable[UsageRecord],
                  residents: Iterable[Resident],
                  dwellings: Iterable[Dwelling]) -> str:
    """
    Build CSV text with header: Date,Resident,Dwelling,kWh

    One row per record, in the order given. Names are resolved through
    resident -> dwelling; anything that cannot be resolved is left empty.
    Names containing commas or quotes are quoted (RFC 4180).
    """
    resident_lookup = {r.id: r for r in residents}
    dwelling_lookup = {d.id: d for d in dwellings}

    f = StringIO()
    writer = csv.writer(f, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for rec in records:
        resident = resident_lookup.get(rec.resident_id)
        dwelling = dwelling_lookup.get(resident.dwelling_id) if resident else None
        writer.writerow([
            rec.date,
            resident.name if resident else "",
            dwelling.name if dwelling else "",
            format_kwh(rec.kwh),
        ])
    # no trailing newline after the last row
    return f.getvalue().rstrip("\n")
