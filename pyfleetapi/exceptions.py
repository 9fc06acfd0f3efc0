# pyFleetAPI - Exceptions
# -*- coding: utf-8 -*-
"""
 Typed errors raised by the FleetAPI client.

 Every error carries a `kind` (ErrorKind) so callers can branch on it
 without inspecting the class, plus the fields that describe it.

    ApiError            - unexpected HTTP status (url, status_code, body)
    AuthFailure         - token endpoint rejected the credentials
    TokenExpiredError   - access or refresh token expired
    RateLimitError      - HTTP 429 from the Fleet API
    UnsupportedError    - operation has no Fleet API equivalent
    EnergySiteError     - error reported for a specific energy site
"""
from datetime import datetime
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    API_ERROR = "api_error"
    AUTH_FAILURE = "auth_failure"
    TOKEN_EXPIRED = "token_expired"
    RATE_LIMITED = "rate_limited"
    UNSUPPORTED = "unsupported"
    ENERGY_SITE = "energy_site"


class PyFleetAPIError(Exception):
    """Base class for all Fleet API errors"""
    kind: ErrorKind

    def to_dict(self) -> dict:
        data = {"kind": self.kind.value, "message": str(self)}
        for key, value in vars(self).items():
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            data[key] = value
        return data


class ApiError(PyFleetAPIError):
    """
    Something unexpected occurred with the HTTP API call. This usually
    means the endpoint returned an unexpected status code.
    """
    kind = ErrorKind.API_ERROR

    def __init__(self, url: str, status_code: int, body: bytes):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"API call to {url} returned unexpected status code {status_code} ({body!r})")


class AuthFailure(PyFleetAPIError):
    """The token endpoint did not hand out an access token"""
    kind = ErrorKind.AUTH_FAILURE

    def __init__(self, url: str, error_text: str, message: str):
        self.url = url
        self.error_text = error_text
        self.message = message
        super().__init__(f"Authentication Failed: {error_text} ({message})")


class TokenExpiredError(PyFleetAPIError):
    """The OAuth token ("access" or "refresh") has expired"""
    kind = ErrorKind.TOKEN_EXPIRED

    def __init__(self, token: str, expires_at: datetime):
        self.token = token
        self.expires_at = expires_at
        super().__init__(f"OAuth token expired: {token} token expired at {expires_at.isoformat()}")


class RateLimitError(PyFleetAPIError):
    """The Fleet API rate limit has been exceeded (HTTP 429)"""
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, endpoint: str, limit: int, remaining: int, reset_time: datetime,
                 retry_after: int):
        self.endpoint = endpoint
        self.limit = limit
        self.remaining = remaining
        self.reset_time = reset_time
        self.retry_after = retry_after  # seconds
        super().__init__(f"Rate limit exceeded for {endpoint}: {remaining}/{limit} remaining, "
                         f"resets at {reset_time.isoformat()} (retry after {retry_after}s)")


class UnsupportedError(PyFleetAPIError):
    """The requested operation is not available through the Fleet API"""
    kind = ErrorKind.UNSUPPORTED

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Operation '{operation}' not supported: {reason}")


class EnergySiteError(PyFleetAPIError):
    """Error reported by the Fleet API for a specific energy site"""
    kind = ErrorKind.ENERGY_SITE

    def __init__(self, energy_site_id: int, error_type: str, message: Optional[str] = None):
        self.energy_site_id = energy_site_id
        self.error_type = error_type
        self.message = message or ""
        super().__init__(f"Energy site {energy_site_id} error ({error_type}): {self.message}")
