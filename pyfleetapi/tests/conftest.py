"""Shared fixtures: a fake clock and a mocked requests session."""
import json
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from pyfleetapi.diagnostics import Diagnostics
from pyfleetapi.models import RateLimitConfig
from pyfleetapi.powerwall import Powerwall
from pyfleetapi.rate_limit import RateLimiter

NOW = 1_700_000_000.0
SITE_ID = 1234567890


class FakeClock:
    """Clock that only moves when told to (or when something sleeps on it)"""

    def __init__(self, now=NOW):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds):
        self.now += seconds


def make_response(status=200, body=None, content=None, headers=None):
    """Build a mock requests.Response. body is JSON encoded, content is sent verbatim."""
    response = MagicMock()
    response.status_code = status
    if content is None:
        content = json.dumps(body if body is not None else {}).encode()
    response.content = content
    response.headers = CaseInsensitiveDict(headers or {})
    return response


def token_response(access_token="new-access", refresh_token="new-refresh", expires_in=28800):
    body = {"access_token": access_token, "expires_in": expires_in, "token_type": "Bearer"}
    if refresh_token is not None:
        body["refresh_token"] = refresh_token
    return make_response(200, body)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def diagnostics():
    return MagicMock(spec=Diagnostics)


@pytest.fixture
def make_client(clock, session, diagnostics):
    """Factory for a Powerwall client wired to the fake clock and session"""

    def factory(site_id=SITE_ID, token_expiry=NOW + 3600, rpm=60):
        limiter = RateLimiter(RateLimitConfig(realtime_data_rpm=rpm), clock=clock, sleep=clock.sleep)
        return Powerwall("client-id", "access", "refresh", site_id=site_id,
                         session=session, diagnostics=diagnostics, rate_limiter=limiter,
                         token_expiry=token_expiry, clock=clock)

    return factory


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def respond():
    return make_response


@pytest.fixture
def token_reply():
    return token_response
