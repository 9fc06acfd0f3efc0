# Example: pyFleetAPI Usage Demo
# ------------------------------
# This script demonstrates how to read and control a Tesla Powerwall
# through the Tesla FleetAPI using the pyFleetAPI library.
#
# Usage:
#   - Set your credentials in the environment or a .env file:
#       CLIENT_ID, ACCESS_TOKEN, REFRESH_TOKEN and optionally SITE_ID, FLEET_API_REGION
#   - Run: python example.py
#
# For more info, see: https://developer.tesla.com/docs/fleet-api

import dotenv

import pyfleetapi
from pyfleetapi.config import FleetSettings

# Load environment variables from .env file if present
dotenv.load_dotenv()

# Enable debug logging for more verbose output (optional for learning)
# pyfleetapi.set_debug(True)

settings = FleetSettings()
if not settings.has_credentials:
    raise SystemExit("Set CLIENT_ID, ACCESS_TOKEN and REFRESH_TOKEN first")

pw = settings.create_client()

# Pick the first energy site unless SITE_ID is set
if not pw.get_selected_energy_site():
    sites = pw.get_energy_products()
    if not sites:
        raise SystemExit("No energy sites found on this account")
    pw.select_energy_site(sites[0].energy_site_id)

try:
    info = pw.get_site_info()
    print(f"Site Name: {info.site_name} ({info.timezone})")
    print(f"Battery Charge: {pw.get_soe().percentage:.1f}%")
    print(f"Grid Status: {pw.get_grid_status().grid_status}")

    # Power flows (W)
    for name, meter in pw.get_meters_aggregates().items():
        print(f"  {name:<8} {meter.instant_power:10.0f} W")

    # Daily energy totals for the last week
    history = pw.get_daily_energy_data()
    for point in history.time_series:
        print(f"  {point.timestamp:%Y-%m-%d} solar {point.solar_energy_exported or 0:8.0f} Wh")
except pyfleetapi.TokenExpiredError as err:
    print(f"Tokens expired, refresh ACCESS_TOKEN and REFRESH_TOKEN: {err}")
except pyfleetapi.RateLimitError as err:
    print(f"Rate limited, try again in {err.retry_after}s")

# The refresh token may have rotated, store it for next time
if pw.get_refresh_token() != settings.refresh_token:
    print("Refresh token was rotated - update REFRESH_TOKEN")
