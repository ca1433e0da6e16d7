# backend/run_local.py
import logging
import sys
from pathlib import Path

from backend.lib.eco_village_core.io import EXPORT_FILENAME, to_csv_string
from backend.lib.eco_village_core.processor import to_resident_totals
from backend.lib.simulation_source import SimulationDataSource


def main(csv_path=None):
    source = SimulationDataSource()
    source.login("local", "")
    data = source.fetch_community_data(days=30)

    totals = to_resident_totals(data.usage, data.residents)
    print(f"Loaded {len(data.usage)} records for {len(data.residents)} residents:")
    for t in totals:
        print(f" - {t.name}: {t.total} kWh")

    if csv_path:
        Path(csv_path).write_text(to_csv_string(data.usage, data.residents, data.dwellings) + "\n")
        print(f"Wrote {csv_path}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    out = sys.argv[1] if len(sys.argv) > 1 else EXPORT_FILENAME
    main(out)
