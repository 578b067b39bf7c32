"""
Pytest configuration and fixtures for all tests.
"""

import json
import os
import sys
import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

# Set up test environment variables before importing any modules
os.environ.setdefault('AWS_DEFAULT_REGION', 'eu-west-1')
os.environ.setdefault('FORWARD_FROM_ADDRESS', 'Unit <unit@test.com>')
os.environ.setdefault('SES_INCOMING_BUCKET', 'testBucket')
os.environ.setdefault('FORWARD_MAPPINGS', json.dumps({
    'emailToEmail': {'sint@castle.es': 'santa@north.pole'},
    'domainToEmail': {'world.com': 'hello@world.com'},
    'domainToDomain': {'blue.com': 'red.com'}
}))
os.environ.setdefault('LOG_LEVEL', 'INFO')

EVENTS_DIR = os.path.join(os.path.dirname(__file__), 'events')

DEFAULT_DATE = 'Mon, 1 Jan 2000 00:00:00 -0000'


@pytest.fixture
def mapping_data():
    """Mapping tables in config.json layout."""
    return {
        'emailToEmail': {'sint@castle.es': 'santa@north.pole'},
        'domainToEmail': {'world.com': 'hello@world.com'},
        'domainToDomain': {'blue.com': 'red.com'}
    }


@pytest.fixture
def ses_event():
    """Load sample SES receipt event from test data."""
    with open(os.path.join(EVENTS_DIR, 'ses-event.json')) as f:
        return json.load(f)
