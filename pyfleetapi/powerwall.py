# pyFleetAPI - Tesla Powerwall on the FleetAPI
# -*- coding: utf-8 -*-
"""
 Powerwall Class

 Maps the Tesla FleetAPI energy site endpoints onto the data model of the
 local Powerwall gateway API (status, site_info, meters/aggregates, soe,
 grid_status) and adds history and control commands that only the cloud
 offers. Gateway calls that have no cloud equivalent raise UnsupportedError.

 Class:
    Powerwall(client_id, access_token, refresh_token) - FleetAPI client for one energy site

 Functions:
    select_energy_site(site_id) - select the energy site for site calls
    get_selected_energy_site() - selected energy site ID (0 = none)
    get_products() - list of all products on the account
    get_energy_products() - list of solar and battery products
    get_status() - general system information
    get_site_info() - site configuration
    get_meters_aggregates() - instant power for solar, battery, site and load
    get_soe() - battery state of energy
    get_grid_status() - grid connection status
    get_telemetry_history(start_date, end_date, time_zone) - charge telemetry
    get_energy_history(start_date, end_date, period, time_zone) - energy totals
    get_backup_history(start_date, end_date, period, time_zone) - backup events
    get_calendar_history(kind, start_date, end_date, period, time_zone) - calendar history
    set_backup_reserve(percent) - set battery backup reserve (0-100)
    set_site_name(name) - rename the energy site
    set_storm_mode(enabled) - enable or disable Storm Watch

 Convenience:
    get_recent_telemetry_data() - last 7 days of telemetry
    get_daily_energy_data() - daily energy totals for the last week
    get_weekly_energy_data() - weekly energy totals for the last month
    get_monthly_energy_data() - monthly energy totals for the last year
    enable_storm_watch() / disable_storm_watch()
    set_minimum_backup_reserve() / set_maximum_backup_reserve()

 Dates are "YYYY-MM-DD" strings or datetime.date objects.
"""
from datetime import date, timedelta
from typing import Dict, List, Optional, Type, Union
from urllib.parse import urlencode

from dateutil.relativedelta import relativedelta

from pyfleetapi.decorators import unsupported
from pyfleetapi.exceptions import EnergySiteError
from pyfleetapi.fleetapi import FleetAPI, T
from pyfleetapi.models import (EnergyProduct, GridCodeData, GridStatusData, HistoryData, HistoryResponse,
                               LiveStatus, LiveStatusResponse, MeterAggregatesData, ProductsResponse,
                               SiteInfoData, SiteInfoResponse, SOEData, StatusData)

ENERGY_RESOURCE_TYPES = ("solar", "battery")
CALENDAR_KINDS = ("energy", "backup")
HISTORY_PERIODS = ("day", "week", "month", "year")
DATE_FORMAT = "%Y-%m-%d"

MINIMUM_BACKUP_RESERVE = 5
MAXIMUM_BACKUP_RESERVE = 100

DateLike = Union[str, date]


def format_date(value: DateLike) -> str:
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    return value


# pylint: disable=too-many-public-methods
class Powerwall(FleetAPI):
    def __init__(self, client_id: str, access_token: str, refresh_token: str,
                 site_id: int = 0, **kwargs):
        """
        Args:
            client_id     = OAuth client ID of your registered Fleet API application
            access_token  = OAuth access token
            refresh_token = OAuth refresh token
            site_id       = Energy site to select (default 0 - none, see select_energy_site())
            **kwargs      = passed to FleetAPI (base_url, session, diagnostics, ...)
        """
        super().__init__(client_id, access_token, refresh_token, **kwargs)
        self.site_id = site_id

    # Site selection

    def select_energy_site(self, site_id: int):
        self.site_id = site_id
        self.logf("Selected energy site: %d", site_id)

    def get_selected_energy_site(self) -> int:
        return self.site_id

    def ensure_site_selected(self):
        if not self.site_id:
            raise ValueError("no energy site selected - call select_energy_site() first")

    def site_endpoint(self, name: str, params: Optional[dict] = None) -> str:
        endpoint = f"/api/1/energy_sites/{self.site_id}/{name}"
        if params:
            endpoint += "?" + urlencode(params)
        return endpoint

    def site_request(self, method: str, endpoint: str, payload: Optional[dict] = None,
                     model: Optional[Type[T]] = None):
        """
        Send a request for the selected energy site and decode the reply.
        A reply with an "error" and no "response" raises EnergySiteError.
        """
        if method == "GET":
            body = self.do_request("GET", endpoint)
        else:
            body = self.do_request(method, endpoint, self.encode_payload(payload))
        data = self.decode_json(endpoint, body)
        if isinstance(data, dict) and data.get("error") and data.get("response") is None:
            raise EnergySiteError(self.site_id, str(data["error"]), data.get("error_description"))
        return self.validate(endpoint, body, data, model)

    def get_live_status(self) -> LiveStatus:
        self.ensure_site_selected()
        self.logf("Fetching live status for energy site %d...", self.site_id)
        return self.site_request("GET", self.site_endpoint("live_status"), model=LiveStatusResponse).response

    # Products

    def get_products(self) -> List[EnergyProduct]:
        self.logf("Fetching products...")
        products = self.get_json("/api/1/products", ProductsResponse)
        self.logf("Found %d products", len(products.response))
        return products.response

    def get_energy_products(self) -> List[EnergyProduct]:
        products = [p for p in self.get_products() if p.resource_type in ENERGY_RESOURCE_TYPES]
        self.logf("Found %d energy products", len(products))
        return products

    # Live status

    def get_status(self) -> StatusData:
        live = self.get_live_status()
        # Fleet API has no gateway identity or uptime, fill with fixed values
        return StatusData(
            din=f"fleet-api-{self.site_id}",
            start_time=live.timestamp,
            up_time_seconds=timedelta(0),
            is_new=False,
            version="fleet-api",
            git_hash="",
            commission_count=0,
            device_type="powerwall",
            sync_type="",
            leader="",
            followers=None,
            cellular_disabled=False,
        )

    def get_meters_aggregates(self) -> Dict[str, MeterAggregatesData]:
        live = self.get_live_status()
        sources = {
            "solar": live.solar_power,
            "battery": live.battery_power,
            "site": live.grid_power,
            "load": live.load_power,
        }
        result = {}
        for category, power in sources.items():
            if power is not None:
                result[category] = MeterAggregatesData(last_communication_time=live.timestamp,
                                                       instant_power=power)
        self.logf("Power flow data retrieved for %d categories", len(result))
        return result

    def get_soe(self) -> SOEData:
        live = self.get_live_status()
        percentage = live.percentage_charged if live.percentage_charged is not None else 0.0
        self.logf("Battery SOE: %.1f%%", percentage)
        return SOEData(percentage=percentage)

    def get_grid_status(self) -> GridStatusData:
        live = self.get_live_status()
        return GridStatusData(grid_status=live.grid_status, grid_services_active=live.grid_services_active)

    # Site info

    def get_site_info(self) -> SiteInfoData:
        self.ensure_site_selected()
        self.logf("Fetching site info for energy site %d...", self.site_id)
        site = self.site_request("GET", self.site_endpoint("site_info"), model=SiteInfoResponse).response
        utility = site.utility
        if not utility and site.tariff_content:
            utility = site.tariff_content.get("utility")
        nameplate_kw = site.nameplate_power / 1000
        return SiteInfoData(
            site_name=site.site_name,
            timezone=site.installation_time_zone,
            max_site_meter_power_kw=int(site.max_site_meter_power_ac / 1000),
            min_site_meter_power_kw=int(site.min_site_meter_power_ac / 1000),
            max_system_energy_kwh=site.nameplate_energy / 1000 if site.nameplate_energy else 0.0,
            max_system_power_kw=nameplate_kw,
            nominal_system_energy_kwh=site.nameplate_energy / 1000 if site.nameplate_energy else 0.0,
            nominal_system_power_kw=nameplate_kw,
            grid_code=GridCodeData(utility=utility),
        )

    # History

    def get_telemetry_history(self, start_date: DateLike, end_date: DateLike,
                              time_zone: Optional[str] = None) -> HistoryData:
        self.ensure_site_selected()
        params = {
            "kind": "charge",
            "start_date": format_date(start_date),
            "end_date": format_date(end_date),
        }
        if time_zone:
            params["time_zone"] = time_zone
        self.logf("Fetching telemetry history for energy site %d: %s", self.site_id, params)
        history = self.site_request("GET", self.site_endpoint("telemetry_history", params),
                                    model=HistoryResponse).response
        self.logf("Telemetry history: %d data points", len(history.time_series))
        return history

    def get_calendar_history(self, kind: str, start_date: DateLike, end_date: DateLike,
                             period: str, time_zone: Optional[str] = None) -> HistoryData:
        self.ensure_site_selected()
        if kind not in CALENDAR_KINDS:
            raise ValueError(f"invalid kind for calendar history: {kind} (supported: {', '.join(CALENDAR_KINDS)})")
        if period not in HISTORY_PERIODS:
            raise ValueError(f"invalid period for calendar history: {period} "
                             f"(supported: {', '.join(HISTORY_PERIODS)})")
        params = {
            "kind": kind,
            "start_date": format_date(start_date),
            "end_date": format_date(end_date),
            "period": period,
        }
        if time_zone:
            params["time_zone"] = time_zone
        self.logf("Fetching calendar history for energy site %d: %s", self.site_id, params)
        history = self.site_request("GET", self.site_endpoint("calendar_history", params),
                                    model=HistoryResponse).response
        self.logf("Calendar history: %d data points for %s (%s periods)", len(history.time_series), kind, period)
        return history

    def get_energy_history(self, start_date: DateLike, end_date: DateLike, period: str,
                           time_zone: Optional[str] = None) -> HistoryData:
        return self.get_calendar_history("energy", start_date, end_date, period, time_zone)

    def get_backup_history(self, start_date: DateLike, end_date: DateLike, period: str,
                           time_zone: Optional[str] = None) -> HistoryData:
        return self.get_calendar_history("backup", start_date, end_date, period, time_zone)

    # Commands

    def set_backup_reserve(self, percent: int):
        self.ensure_site_selected()
        if percent < 0 or percent > 100:
            raise ValueError(f"backup reserve percent must be between 0 and 100, got {percent}")
        self.logf("Setting backup reserve to %d%% for energy site %d...", percent, self.site_id)
        self.site_request("POST", self.site_endpoint("backup"), {"backup_reserve_percent": percent})

    def set_site_name(self, name: str):
        self.ensure_site_selected()
        if not name:
            raise ValueError("site name cannot be empty")
        self.logf("Setting site name to '%s' for energy site %d...", name, self.site_id)
        self.site_request("POST", self.site_endpoint("site_name"), {"site_name": name})

    def set_storm_mode(self, enabled: bool):
        self.ensure_site_selected()
        self.logf("Setting Storm Watch mode to %s for energy site %d...", enabled, self.site_id)
        self.site_request("POST", self.site_endpoint("storm_mode"), {"enabled": enabled})

    # Gateway calls with no Fleet API equivalent

    @unsupported("Fleet API does not provide detailed operation data available from local gateway")
    def get_operation(self):
        pass

    @unsupported("Fleet API does not provide detailed system diagnostics available from local gateway")
    def get_system_status(self):
        pass

    @unsupported("Fleet API does not expose local gateway clustering information")
    def get_sitemaster(self):
        pass

    @unsupported("Fleet API does not expose local network configuration")
    def get_networks(self):
        pass

    @unsupported("Fleet API does not provide detailed grid fault information available from local gateway")
    def get_grid_faults(self):
        pass

    @unsupported("Fleet API does not provide individual meter details - use get_meters_aggregates() instead")
    def get_meters(self, category: str):
        pass

    # Convenience

    def today(self) -> date:
        return date.fromtimestamp(self.clock())

    def get_recent_telemetry_data(self) -> HistoryData:
        end = self.today()
        return self.get_telemetry_history(end - relativedelta(days=7), end)

    def get_daily_energy_data(self) -> HistoryData:
        end = self.today()
        return self.get_energy_history(end - relativedelta(days=7), end, "day")

    def get_weekly_energy_data(self) -> HistoryData:
        end = self.today()
        return self.get_energy_history(end - relativedelta(months=1), end, "week")

    def get_monthly_energy_data(self) -> HistoryData:
        end = self.today()
        return self.get_energy_history(end - relativedelta(years=1), end, "month")

    def enable_storm_watch(self):
        self.set_storm_mode(True)

    def disable_storm_watch(self):
        self.set_storm_mode(False)

    def set_minimum_backup_reserve(self):
        self.set_backup_reserve(MINIMUM_BACKUP_RESERVE)

    def set_maximum_backup_reserve(self):
        self.set_backup_reserve(MAXIMUM_BACKUP_RESERVE)
