#!/usr/bin/env python3
"""Load the incident feed once and write a data-quality summary CSV.

Writes: reports/smoke_summary.csv
"""
from pathlib import Path
import sys

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'src'))

from violence_tracker.config import FeedConfig
from violence_tracker.data import IncidentFeedLoader
from violence_tracker.query import aggregate
from violence_tracker.utils.exceptions import FetchError

OUT = ROOT / 'reports' / 'smoke_summary.csv'


def main():
    loader = IncidentFeedLoader(FeedConfig.from_env())
    try:
        incidents = loader.load()
    except FetchError as e:
        print(f'Feed load failed ({type(e).__name__}): {e}', file=sys.stderr)
        return 1

    stats = aggregate(incidents)
    rows = [{'metric': name, 'value': value} for name, value in loader.last_report.as_rows()]
    rows += [
        {'metric': 'weekly_count', 'value': stats.weekly_count},
        {'metric': 'monthly_count', 'value': stats.monthly_count},
        {'metric': 'states_count', 'value': stats.states_count},
        {'metric': 'districts_count', 'value': stats.districts_count},
        {'metric': 'most_affected_state', 'value': stats.most_affected_state or 'N/A'},
    ]
    df = pd.DataFrame(rows)
    OUT.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(OUT, index=False)
    print('Wrote', OUT)
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
