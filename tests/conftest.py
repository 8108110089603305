import sys
from pathlib import Path

import pytest
import requests

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


SAMPLE_CSV = (
    'incident_id,headline,summary,incident_date,location,district,state,lat,lon,victim_group,incident_type,alleged_perp,rss_feed_id\n'
    'INC_001,Dalit groom attacked,"Groom pulled off horse, beaten",2024-01-01,Near temple,Jaipur,Rajasthan,26.9124,75.7873,Dalit,Physical Violence,Upper caste men,feed_1\n'
    'INC_002,Church vandalised,,02/01/2024,,Bastar,Chhattisgarh,abc,81.9,Christian,Property Damage,Mob,feed_2\n'
    'INC_003,,Social boycott reported,03-01-2024,,,Gujarat,0,0,Dalit,Social Boycott,,feed_1\n'
    'INC_004,,,not a date,,,,,,,,,feed_3\n'
)


class FakeResponse:
    def __init__(self, status_code=200, text='', headers=None):
        self.status_code = status_code
        self.text = text
        self.content = text.encode('utf-8')
        self.headers = headers or {}


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def csv_session():
    return FakeSession(FakeResponse(200, SAMPLE_CSV, {'Content-Type': 'text/csv'}))


@pytest.fixture
def broken_session():
    return FakeSession(requests.exceptions.ConnectionError('Name or service not known'))
