"""Deterministic stand-in for the published sheet, used for offline development of the dashboard."""

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

STATES = ['Delhi', 'Maharashtra', 'Karnataka', 'Tamil Nadu', 'West Bengal', 'Gujarat', 'Rajasthan', 'Uttar Pradesh']
VICTIM_GROUPS = ['Dalit', 'Adivasi', 'Muslim', 'Christian', 'Sikh', 'Other Minority']
INCIDENT_TYPES = ['Physical Violence', 'Verbal Abuse', 'Discrimination', 'Property Damage', 'Social Boycott']
POLICE_ACTIONS = ['FIR Filed', 'Investigation Ongoing', 'No Action', 'Case Closed', 'Arrest Made']


def generate_mock_feed(count: int = 50, seed: int = 42, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build a JSON-shaped payload ({'lastUpdated', 'totalIncidents', 'data'}) of snake_case rows.

    Args:
        count (int): Number of incidents to generate
        seed (int): Seed for the private random generator, so repeated calls match
        now (datetime): Anchor for the last-90-days date spread. Defaults to the current UTC time

    Returns:
        dict: Payload accepted by violence_tracker.data.parsing / normalize_rows
    """
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    rows = []

    for i in range(count):
        when = now - timedelta(days=rng.randrange(90))
        state = rng.choice(STATES)
        victim_group = rng.choice(VICTIM_GROUPS)
        incident_type = rng.choice(INCIDENT_TYPES)
        confidence = rng.random()

        rows.append({
            'incident_id': f'INC_{i + 1:03d}',
            'title': f'{incident_type} incident reported in {state}',
            'summary': (
                f'A case of {incident_type.lower()} against a {victim_group} person was reported. '
                'Local authorities have been notified.'
            ),
            'incident_date': when.strftime('%Y-%m-%d'),
            'published_at': when.strftime('%Y-%m-%dT%H:%M:%S.000Z'),
            'location_summary': f'Near {state} City Center',
            'district': f'District {i + 1}',
            'state': state,
            # India's bounding box, roughly
            'lat': round(20 + rng.random() * 15, 5),
            'lon': round(68 + rng.random() * 30, 5),
            'victim_group': victim_group,
            'incident_type': incident_type,
            'alleged_perp': 'Unknown',
            'police_action': rng.choice(POLICE_ACTIONS),
            'source_url': f'https://example.com/news/{i}',
            'source_name': f'News Source {rng.randrange(5) + 1}',
            'rss_feed_id': f'feed_{rng.randrange(5)}',
            'confidence_score': 'Low' if confidence < 0.3 else 'Medium' if confidence < 0.7 else 'High',
            'verified_manually': 'TRUE' if rng.random() < 0.3 else 'FALSE',
        })

    return {
        'lastUpdated': now.strftime('%Y-%m-%dT%H:%M:%S.000Z'),
        'totalIncidents': len(rows),
        'data': rows,
    }
