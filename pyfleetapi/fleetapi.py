# pyFleetAPI - Tesla FleetAPI Class
# -*- coding: utf-8 -*-
"""
 Tesla FleetAPI Class

 Transport and authentication core for the Tesla FleetAPI. Every call
 goes through do_request(), which paces requests with the client side
 rate limiter, refreshes the OAuth access token when it is about to
 expire and turns HTTP failures into typed errors. Nothing is retried
 here: a 401 or 429 is reported to the caller as TokenExpiredError or
 RateLimitError.

 Class:
    FleetAPI(client_id, access_token, refresh_token) - Tesla FleetAPI Class

 Functions:
    new_token() - refresh the OAuth access token
    is_token_expired() - True if the access token expires within 5 minutes
    rate_limit_wait() - block until the next request is allowed
    do_request(method, endpoint, payload) - authenticated request, raw body
    get_json(endpoint, model) - GET and decode JSON
    post_json(endpoint, payload, model) - POST JSON and decode JSON
    set_rate_limit(rpm) - set requests per minute ceiling
    get_api_usage_stats() - request count and rate limit settings

 Tokens are not obtained or stored here: pass in an access token, refresh
 token and client ID obtained from Tesla, and read back the (possibly
 rotated) refresh token with get_refresh_token() to persist it yourself.

 Tesla FleetAPI Reference: https://developer.tesla.com/docs/fleet-api
"""

import json
import re
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Type, TypeVar, Union

import requests
from pydantic import BaseModel, ValidationError

from pyfleetapi import __version__
from pyfleetapi.diagnostics import Diagnostics, LoggingDiagnostics
from pyfleetapi.exceptions import ApiError, AuthFailure, RateLimitError, TokenExpiredError
from pyfleetapi.models import RateLimitConfig
from pyfleetapi.rate_limit import RateLimiter

# Defaults
FLEET_API_BASE_URL = "https://fleet-api.prd.na.vn.cloud.tesla.com"
TOKEN_URL = "https://fleet-auth.prd.vn.cloud.tesla.com/oauth2/v3/token"
API_TIMEOUT = 30      # Fleet API can be slower than the local gateway
REFRESH_TIMEOUT = 60  # Time in seconds to wait for refresh token response
TOKEN_EXPIRY_MARGIN = 300  # Refresh tokens this many seconds before they expire
DEFAULT_RETRY_AFTER = 60
USER_AGENT = f"pyfleetapi/{__version__}"

T = TypeVar("T", bound=BaseModel)


def parse_retry_after(value: Optional[str]) -> int:
    """Seconds from a Retry-After header, DEFAULT_RETRY_AFTER if missing or not a number"""
    if value:
        match = re.match(r"\s*(-?\d+)", value)
        if match:
            return int(match.group(1))
    return DEFAULT_RETRY_AFTER


# pylint: disable=too-many-instance-attributes
class FleetAPI:
    def __init__(self, client_id: str, access_token: str, refresh_token: str,
                 base_url: str = FLEET_API_BASE_URL, token_url: str = TOKEN_URL,
                 timeout: int = API_TIMEOUT, session: Optional[requests.Session] = None,
                 diagnostics: Optional[Diagnostics] = None,
                 rate_limiter: Optional[RateLimiter] = None,
                 token_expiry: float = 0.0,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            client_id     = OAuth client ID of your registered Fleet API application
            access_token  = OAuth access token
            refresh_token = OAuth refresh token
            base_url      = Fleet API base URL for your region
            token_url     = OAuth token endpoint
            timeout       = Seconds for the timeout on http requests
            session       = requests.Session to use (default creates one)
            diagnostics   = Diagnostics sink (default logs to the pyfleetapi logger)
            rate_limiter  = RateLimiter to pace requests (default 60 requests per minute)
            token_expiry  = Access token expiry as epoch seconds (default 0 - refresh on first request)
            clock         = Wall clock in epoch seconds
        """
        self.client_id = client_id
        self._access_token = access_token
        self._refresh_token = refresh_token
        self.token_expiry = token_expiry
        self.base_url = base_url.rstrip("/")
        self.token_url = token_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.diagnostics = diagnostics or LoggingDiagnostics()
        self.rate_limiter = rate_limiter or RateLimiter(RateLimitConfig())
        self.clock = clock
        self.request_count = 0
        self.token_lock = threading.Lock()
        self.logf("New Fleet API client created")

    @property
    def rate_limit_config(self) -> RateLimitConfig:
        return self.rate_limiter.config

    def logf(self, msg: str, *args):
        self.diagnostics.trace(f"{{FleetAPI {id(self):#x}}} " + msg, *args)

    def json_error(self, api: str, data: bytes, err: Exception):
        msg = f"Error decoding Fleet API '{api}' response {data!r}"
        self.diagnostics.error(msg, err)

    def _timestamp(self, seconds: float) -> datetime:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    # Token management

    def new_token(self):
        """
        Refresh the OAuth access token using the refresh token.

        Raises:
            TokenExpiredError: token endpoint answered with a non-200 status
            AuthFailure: response carried no access token
            json.JSONDecodeError: response was not JSON
        """
        self.logf("Refreshing OAuth access token using client_id: %s", self.client_id)
        data = {
            'grant_type': 'refresh_token',
            'refresh_token': self._refresh_token,
            'client_id': self.client_id,
        }
        headers = {
            'Content-Type': 'application/x-www-form-urlencoded',
            'User-Agent': USER_AGENT,
        }
        response = self.session.post(self.token_url, data=data, headers=headers,
                                     timeout=REFRESH_TIMEOUT)
        body = response.content
        if response.status_code != 200:
            self.logf("Token refresh failed: status=%d body=%s", response.status_code, body)
            raise TokenExpiredError("refresh", self._timestamp(self.clock()))

        try:
            payload = json.loads(body)
        except ValueError as err:
            self.json_error("token_refresh", body, err)
            raise
        if not isinstance(payload, dict) or not payload.get('access_token'):
            payload = payload if isinstance(payload, dict) else {}
            raise AuthFailure(self.token_url, payload.get('error') or "missing access_token",
                              payload.get('error_description') or "token response did not include an access token")

        self._access_token = payload['access_token']
        if payload.get('refresh_token'):
            self._refresh_token = payload['refresh_token']
        self.token_expiry = self.clock() + int(payload.get('expires_in') or 0)
        self.logf("Token refresh successful, expires at %s", self.get_token_expiry().isoformat())

    def is_token_expired(self) -> bool:
        """Access token counts as expired 5 minutes before its actual expiry"""
        return self.clock() + TOKEN_EXPIRY_MARGIN >= self.token_expiry

    def get_token_expiry(self) -> datetime:
        return self._timestamp(self.token_expiry)

    def set_refresh_token(self, token: str):
        self._refresh_token = token
        self.logf("Set refresh token")

    def get_refresh_token(self) -> str:
        return self._refresh_token

    def set_auth_token(self, token: str):
        self._access_token = token
        self.logf("Set access token")

    def get_auth_token(self) -> str:
        return self._access_token

    # Rate limiting

    def set_rate_limit(self, requests_per_minute: int):
        self.rate_limiter.set_rate(requests_per_minute)
        self.logf("Set rate limit to %d requests per minute", requests_per_minute)

    def get_api_usage_stats(self) -> dict:
        return {
            "request_count": self.request_count,
            "realtime_data_rpm": self.rate_limit_config.realtime_data_rpm,
            "commands_rpm": self.rate_limit_config.commands_rpm,
        }

    def rate_limit_wait(self):
        waited = self.rate_limiter.wait()
        if waited:
            self.logf("Rate limiting: waited %.3fs before next request", waited)

    # Requests

    def do_request(self, method: str, endpoint: str, payload: Optional[bytes] = None) -> bytes:
        """
        Perform an authenticated, rate limited request against the Fleet API.

        Args:
            method (str): HTTP method ('GET' or 'POST').
            endpoint (str): Path (and query) below the base URL, e.g. '/api/1/products'.
            payload (bytes, optional): JSON encoded request body.

        Returns:
            bytes: The raw response body for a 200 or 201 reply.
        """
        self.rate_limit_wait()

        with self.token_lock:
            if self.is_token_expired():
                self.logf("Access token expired, refreshing...")
                self.new_token()

        url = self.base_url + endpoint
        headers = {
            'Authorization': 'Bearer ' + self._access_token,
            'User-Agent': USER_AGENT,
        }
        if payload is not None:
            headers['Content-Type'] = 'application/json'

        self.logf("Fleet API request: method=%s url=%s", method, url)
        self.request_count += 1
        response = self.session.request(method, url, data=payload, headers=headers,
                                        timeout=self.timeout)
        body = response.content
        status = response.status_code

        if status in (200, 201):
            self.logf("Fleet API request successful: status=%d", status)
            return body

        if status == 401:
            self.logf("Fleet API authentication failed: status=%d body=%s", status, body)
            raise TokenExpiredError("access", self.get_token_expiry())

        if status == 429:
            self.logf("Fleet API rate limited: status=%d body=%s", status, body)
            retry_after = parse_retry_after(response.headers.get('Retry-After'))
            raise RateLimitError(endpoint=endpoint,
                                 limit=self.rate_limit_config.realtime_data_rpm,
                                 remaining=0,
                                 reset_time=self._timestamp(self.clock() + retry_after),
                                 retry_after=retry_after)

        self.logf("Fleet API request failed: status=%d body=%s", status, body)
        raise ApiError(url, status, body)

    def encode_payload(self, payload: Optional[dict]) -> Optional[bytes]:
        return json.dumps(payload).encode() if payload is not None else None

    def decode_json(self, endpoint: str, body: bytes):
        try:
            return json.loads(body)
        except ValueError as err:
            self.json_error(endpoint, body, err)
            raise

    def validate(self, endpoint: str, body: bytes, data, model: Optional[Type[T]]):
        if model is None:
            return data
        try:
            return model.model_validate(data)
        except ValidationError as err:
            self.json_error(endpoint, body, err)
            raise

    def _decode(self, endpoint: str, body: bytes,
                model: Optional[Type[T]]) -> Union[T, dict, list, None]:
        return self.validate(endpoint, body, self.decode_json(endpoint, body), model)

    def get_json(self, endpoint: str, model: Optional[Type[T]] = None) -> Union[T, dict, list, None]:
        """GET endpoint and decode the JSON reply (into model if given)"""
        body = self.do_request("GET", endpoint)
        return self._decode(endpoint, body, model)

    def post_json(self, endpoint: str, payload: Optional[dict] = None,
                  model: Optional[Type[T]] = None) -> Union[T, dict, list, None]:
        """POST payload as JSON to endpoint and decode the JSON reply (into model if given)"""
        body = self.do_request("POST", endpoint, self.encode_payload(payload))
        return self._decode(endpoint, body, model)
