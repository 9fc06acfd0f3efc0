# pyFleetAPI Module
# -*- coding: utf-8 -*-
"""
 Python module to monitor and control a Tesla Powerwall through the Tesla FleetAPI

 For more information see https://developer.tesla.com/docs/fleet-api

 Features
    * Typed access to energy site live status, site info and history
    * Powerwall gateway style results (status, meters/aggregates, soe, grid_status)
    * Control commands: backup reserve, Storm Watch, site name
    * Automatic OAuth access token refresh
    * Client side rate limiting (60 requests per minute by default)
    * Typed errors for expired tokens, rate limits and unsupported calls

 Classes
    FleetAPI(client_id, access_token, refresh_token, base_url, token_url, timeout,
        session, diagnostics, rate_limiter, token_expiry, clock)
    Powerwall(client_id, access_token, refresh_token, site_id, ...)

 Parameters
    client_id                 # (required) OAuth client ID of your Fleet API application
    access_token              # (required) OAuth access token
    refresh_token             # (required) OAuth refresh token
    site_id = 0               # Energy site to use (see select_energy_site())
    base_url                  # Fleet API base URL (default North America)
    timeout = 30              # Timeout for HTTPS calls in seconds

 Functions
    set_debug(toggle, color)  # Enable verbose logging

 Requirements
    This module requires the following modules: requests, pydantic, pydantic-settings,
    python-dateutil, python-dotenv
    pip install pyfleetapi
"""
import logging

version_tuple = (0, 1, 0)
version = __version__ = '%d.%d.%d' % version_tuple
__author__ = 'pyFleetAPI Developers'

log = logging.getLogger(__name__)
log.addHandler(logging.NullHandler())

# pylint: disable=wrong-import-position
from pyfleetapi.diagnostics import Diagnostics, LoggingDiagnostics
from pyfleetapi.exceptions import (ApiError, AuthFailure, EnergySiteError, ErrorKind, PyFleetAPIError,
                                   RateLimitError, TokenExpiredError, UnsupportedError)
from pyfleetapi.fleetapi import FLEET_API_BASE_URL, TOKEN_URL, FleetAPI
from pyfleetapi.models import RateLimitConfig
from pyfleetapi.powerwall import Powerwall
from pyfleetapi.rate_limit import RateLimiter


def set_debug(toggle=True, color=True):
    """Enable verbose logging"""
    if toggle:
        if color:
            logging.basicConfig(format='\x1b[31;1m%(levelname)s:%(message)s\x1b[0m', level=logging.DEBUG)
        else:
            logging.basicConfig(format='%(levelname)s:%(message)s', level=logging.DEBUG)
        log.setLevel(logging.DEBUG)
        log.debug("%s [%s]\n" % (__name__, __version__))
    else:
        log.setLevel(logging.NOTSET)


__all__ = [
    "ApiError", "AuthFailure", "Diagnostics", "EnergySiteError", "ErrorKind", "FLEET_API_BASE_URL",
    "FleetAPI", "LoggingDiagnostics", "Powerwall", "PyFleetAPIError", "RateLimitConfig", "RateLimitError",
    "RateLimiter", "TOKEN_URL", "TokenExpiredError", "UnsupportedError", "set_debug",
]
