"""
Shared test fixtures.

Repositories are exercised against a recording gateway: it keeps every
statement it is given and answers with canned rows, so no PostgreSQL server
is needed.
"""
import os
import tempfile

os.environ.setdefault('LOG_DIR', tempfile.mkdtemp(prefix='hockeyhub-logs-'))

from contextlib import asynccontextmanager

import pytest

from hockeyhub_medical.database import Gateway, MedicalDatabase


class RecordingGateway(Gateway):
    """Spy gateway. Queued responses are row lists, or exceptions to raise."""

    def __init__(self, responses=None):
        super().__init__('TEST')
        self.calls = []
        self.responses = list(responses or [])
        self.transactions = []

    def respond(self, *responses):
        self.responses.extend(responses)
        return self

    async def query(self, text, params=()):
        self.calls.append((text, list(params)))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, BaseException):
                raise response
            return response
        return []

    async def execute(self, text, params=()):
        self.calls.append((text, list(params)))
        return 'OK'

    @asynccontextmanager
    async def get_connection(self):
        yield self

    @asynccontextmanager
    async def transaction(self):
        self.transactions.append('BEGIN')
        try:
            yield self
        except BaseException:
            self.transactions.append('ROLLBACK')
            raise
        else:
            self.transactions.append('COMMIT')

    async def health_check(self):
        return True

    @property
    def last_sql(self):
        return self.calls[-1][0]

    @property
    def last_params(self):
        return self.calls[-1][1]


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def db(gateway):
    return MedicalDatabase(gateway)


# ============================================================================
# Sample rows
# ============================================================================

ORG_ID = '11111111-1111-1111-1111-111111111111'
TEAM_ID = '22222222-2222-2222-2222-222222222222'
PLAYER_ID = '33333333-3333-3333-3333-333333333333'
STAFF_ID = '44444444-4444-4444-4444-444444444444'
INJURY_ID = '55555555-5555-5555-5555-555555555555'


@pytest.fixture
def injury_row():
    return {
        'id': INJURY_ID,
        'organization_id': ORG_ID,
        'player_id': PLAYER_ID,
        'team_id': TEAM_ID,
        'body_part': 'ankle',
        'injury_type': 'sprain',
        'severity': 'moderate',
        'status': 'active',
        'reported_by_user_id': STAFF_ID,
    }
