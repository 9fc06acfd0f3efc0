"""
Configuration for pyFleetAPI

Settings are read from environment variables (a .env file in the current
directory is loaded by the command line tool before settings are read).

Environment Variables:

    Credentials:
        CLIENT_ID            - OAuth client ID of your Fleet API application
        ACCESS_TOKEN         - OAuth access token
        REFRESH_TOKEN        - OAuth refresh token
        SITE_ID              - Energy site ID (default: none, first energy product is used)

    Endpoints:
        FLEET_API_REGION     - Fleet API region: na, eu or cn (default: "na")
        FLEET_API_BASE_URL   - Explicit Fleet API base URL, overrides FLEET_API_REGION
        FLEET_TOKEN_URL      - OAuth token endpoint

    Client:
        FLEET_TIMEOUT        - HTTP timeout in seconds (default: 30)
        FLEET_REALTIME_RPM   - Requests per minute ceiling (default: 60)
        FLEET_COMMANDS_RPM   - Commands per minute ceiling (default: 30)
        FLEET_DEBUG          - Enable debug logging "yes"/"no" (default: "no")

Example:
    from pyfleetapi.config import FleetSettings

    settings = FleetSettings()
    if settings.has_credentials:
        pw = settings.create_client()
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from pyfleetapi.fleetapi import API_TIMEOUT, TOKEN_URL
from pyfleetapi.models import RateLimitConfig
from pyfleetapi.powerwall import Powerwall
from pyfleetapi.rate_limit import RateLimiter

# Fleet API base URLs by region
FLEET_API_URLS = {
    "na": "https://fleet-api.prd.na.vn.cloud.tesla.com",  # North America, Asia-Pacific
    "eu": "https://fleet-api.prd.eu.vn.cloud.tesla.com",  # Europe, Middle East, Africa
    "cn": "https://fleet-api.prd.cn.vn.cloud.tesla.cn",  # China
}


class FleetSettings(BaseSettings):
    """Fleet API client settings"""
    client_id: str = Field(default="", alias="CLIENT_ID")
    access_token: str = Field(default="", alias="ACCESS_TOKEN")
    refresh_token: str = Field(default="", alias="REFRESH_TOKEN")
    site_id: int = Field(default=0, alias="SITE_ID")

    region: str = Field(default="na", alias="FLEET_API_REGION")
    base_url: Optional[str] = Field(default=None, alias="FLEET_API_BASE_URL")
    token_url: str = Field(default=TOKEN_URL, alias="FLEET_TOKEN_URL")

    timeout: int = Field(default=API_TIMEOUT, alias="FLEET_TIMEOUT")
    realtime_data_rpm: int = Field(default=60, alias="FLEET_REALTIME_RPM")
    commands_rpm: int = Field(default=30, alias="FLEET_COMMANDS_RPM")
    debug: bool = Field(default=False, alias="FLEET_DEBUG")

    model_config = {
        "env_prefix": "",
        "case_sensitive": False
    }

    @property
    def has_credentials(self) -> bool:
        """All three OAuth values are needed to make and refresh requests."""
        return bool(self.client_id and self.access_token and self.refresh_token)

    @property
    def api_base_url(self) -> str:
        if self.base_url:
            return self.base_url
        region = self.region.lower()
        if region not in FLEET_API_URLS:
            raise ValueError(f"unknown Fleet API region: {self.region} (supported: {', '.join(FLEET_API_URLS)})")
        return FLEET_API_URLS[region]

    def create_client(self, **kwargs) -> Powerwall:
        """Build a Powerwall client from these settings; kwargs go to Powerwall()"""
        limits = RateLimitConfig(realtime_data_rpm=self.realtime_data_rpm, commands_rpm=self.commands_rpm)
        kwargs.setdefault("rate_limiter", RateLimiter(limits))
        return Powerwall(self.client_id, self.access_token, self.refresh_token,
                         site_id=self.site_id, base_url=self.api_base_url,
                         token_url=self.token_url, timeout=self.timeout, **kwargs)
