"""Tests for the Powerwall endpoint layer using a mocked session."""
import json
from datetime import date, datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from pyfleetapi.exceptions import EnergySiteError, UnsupportedError
from pyfleetapi.models import HistoryData, SiteInfoData, StatusData

SITE_ID = 1234567890
BASE = f"https://fleet-api.prd.na.vn.cloud.tesla.com/api/1/energy_sites/{SITE_ID}"

LIVE_STATUS = {
    "response": {
        "solar_power": 3500,
        "energy_left": 18000.5,
        "total_pack_energy": 27000,
        "percentage_charged": 66.7,
        "backup_capable": True,
        "battery_power": -1200,
        "load_power": 1800,
        "grid_status": "Active",
        "grid_services_active": False,
        "grid_power": -500,
        "grid_services_power": 0,
        "generator_power": 0,
        "island_status": "on_grid",
        "storm_mode_active": False,
        "timestamp": "2024-05-12T00:18:19-07:00",
        "wall_connectors": [],
    }
}

SITE_INFO = {
    "response": {
        "id": "STE20210924-00123",
        "site_name": "Home Energy Gateway",
        "backup_reserve_percent": 20,
        "default_real_mode": "self_consumption",
        "installation_date": "2021-09-25T15:53:47-07:00",
        "components": {"solar": True, "battery": True, "grid": True, "backup": True,
                       "gateways": [{"din": "1152100-14-J--TG123", "is_active": True}]},
        "version": "24.4.0 0fe780c9",
        "battery_count": 2,
        "nameplate_power": 10800,
        "nameplate_energy": 27000,
        "installation_time_zone": "America/Los_Angeles",
        "max_site_meter_power_ac": 1000000000,
        "min_site_meter_power_ac": -1000000000,
        "tariff_content": {"utility": "Pacific Gas & Electric Co"},
    }
}

HISTORY = {
    "response": {
        "serial_number": "1152100-14-J--TG123",
        "period": "day",
        "time_series": [
            {"timestamp": "2024-05-11T00:00:00-07:00", "solar_energy_exported": 30123.4,
             "grid_energy_imported": 1200, "battery_energy_exported": 8000},
            {"timestamp": "2024-05-12T00:00:00-07:00", "solar_energy_exported": 29000},
        ],
    }
}


def sent(session):
    """Method, URL, query params and JSON body of the last request"""
    args, kwargs = session.request.call_args
    url = urlparse(args[1])
    body = json.loads(kwargs["data"]) if kwargs.get("data") else None
    return args[0], f"{url.scheme}://{url.netloc}{url.path}", parse_qs(url.query), body


class TestSiteSelection:
    def test_select(self, make_client):
        pw = make_client(site_id=0)
        assert pw.get_selected_energy_site() == 0
        pw.select_energy_site(42)
        assert pw.get_selected_energy_site() == 42

    @pytest.mark.parametrize("call", [
        lambda pw: pw.get_status(),
        lambda pw: pw.get_site_info(),
        lambda pw: pw.get_meters_aggregates(),
        lambda pw: pw.get_soe(),
        lambda pw: pw.get_grid_status(),
        lambda pw: pw.get_telemetry_history("2024-01-01", "2024-01-07"),
        lambda pw: pw.get_energy_history("2024-01-01", "2024-01-07", "day"),
        lambda pw: pw.set_backup_reserve(20),
        lambda pw: pw.set_site_name("Home"),
        lambda pw: pw.set_storm_mode(True),
    ])
    def test_site_calls_need_selection(self, make_client, session, call):
        pw = make_client(site_id=0)
        with pytest.raises(ValueError):
            call(pw)
        session.request.assert_not_called()
        session.post.assert_not_called()


class TestProducts:
    PRODUCTS = {
        "response": [
            {"energy_site_id": 111, "resource_type": "battery", "site_name": "Home"},
            {"id": 99, "vin": "5YJ3E1EA7KF000000", "display_name": "Car"},
            {"energy_site_id": 222, "resource_type": "solar", "site_name": "Cabin"},
            {"energy_site_id": 333, "resource_type": "wall_connector"},
        ],
        "count": 4,
    }

    def test_get_products(self, client, session, respond):
        session.request.return_value = respond(200, self.PRODUCTS)
        products = client.get_products()
        assert len(products) == 4
        assert products[1].vin == "5YJ3E1EA7KF000000"
        assert sent(session)[1].endswith("/api/1/products")

    def test_get_energy_products_filters_in_order(self, client, session, respond):
        session.request.return_value = respond(200, self.PRODUCTS)
        products = client.get_energy_products()
        assert [p.energy_site_id for p in products] == [111, 222]

    def test_products_do_not_need_site(self, make_client, session, respond):
        session.request.return_value = respond(200, {"response": [], "count": 0})
        assert make_client(site_id=0).get_energy_products() == []


class TestLiveStatus:
    def test_get_status_sentinels(self, client, session, respond):
        session.request.return_value = respond(200, LIVE_STATUS)
        status = client.get_status()
        assert isinstance(status, StatusData)
        assert status.din == f"fleet-api-{SITE_ID}"
        assert status.version == "fleet-api"
        assert status.device_type == "powerwall"
        assert status.up_time_seconds == timedelta(0)
        assert status.start_time == datetime(2024, 5, 12, 7, 18, 19, tzinfo=timezone.utc)
        assert status.git_hash == ""
        assert status.commission_count == 0
        assert status.followers is None
        assert not status.is_new
        assert not status.cellular_disabled
        assert sent(session)[1] == f"{BASE}/live_status"

    def test_status_json_encoding(self, client, session, respond):
        session.request.return_value = respond(200, LIVE_STATUS)
        data = client.get_status().model_dump(mode="json")
        assert data["start_time"] == "2024-05-12 00:18:19 -0700"
        assert data["up_time_seconds"] == "0s"

    def test_meters_aggregates(self, client, session, respond):
        session.request.return_value = respond(200, LIVE_STATUS)
        aggregates = client.get_meters_aggregates()
        assert set(aggregates) == {"solar", "battery", "site", "load"}
        assert aggregates["site"].instant_power == -500
        assert aggregates["battery"].instant_power == -1200
        assert aggregates["solar"].last_communication_time.year == 2024

    def test_meters_aggregates_skip_missing(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {"solar_power": 0, "load_power": 900}})
        aggregates = client.get_meters_aggregates()
        assert set(aggregates) == {"solar", "load"}
        assert aggregates["solar"].instant_power == 0

    def test_soe(self, client, session, respond):
        session.request.return_value = respond(200, LIVE_STATUS)
        assert client.get_soe().percentage == pytest.approx(66.7)

    def test_soe_missing_is_zero(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {}})
        assert client.get_soe().percentage == 0

    def test_grid_status(self, client, session, respond):
        session.request.return_value = respond(200, LIVE_STATUS)
        grid = client.get_grid_status()
        assert grid.grid_status == "Active"
        assert grid.grid_services_active is False

    def test_energy_site_error(self, client, session, respond):
        session.request.return_value = respond(200, {"response": None, "error": "site offline",
                                                     "error_description": "gateway not reachable"})
        with pytest.raises(EnergySiteError) as exc:
            client.get_soe()
        assert exc.value.energy_site_id == SITE_ID
        assert exc.value.error_type == "site offline"
        assert exc.value.message == "gateway not reachable"


class TestSiteInfo:
    def test_site_info_mapping(self, client, session, respond):
        session.request.return_value = respond(200, SITE_INFO)
        info = client.get_site_info()
        assert isinstance(info, SiteInfoData)
        assert info.site_name == "Home Energy Gateway"
        assert info.timezone == "America/Los_Angeles"
        assert info.max_site_meter_power_kw == 1000000
        assert info.min_site_meter_power_kw == -1000000
        assert info.nominal_system_power_kw == pytest.approx(10.8)
        assert info.max_system_energy_kwh == pytest.approx(27.0)
        assert info.grid_code.utility == "Pacific Gas & Electric Co"
        assert sent(session)[1] == f"{BASE}/site_info"

    def test_site_info_aliases(self, client, session, respond):
        session.request.return_value = respond(200, SITE_INFO)
        data = client.get_site_info().model_dump(by_alias=True)
        assert data["nominal_system_power_kW"] == pytest.approx(10.8)
        assert "max_site_meter_power_kW" in data

    def test_site_info_without_energy(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {"site_name": "Small", "utility": "SCE"}})
        info = client.get_site_info()
        assert info.max_system_energy_kwh == 0
        assert info.grid_code.utility == "SCE"


class TestHistory:
    def test_telemetry_history(self, client, session, respond):
        session.request.return_value = respond(200, HISTORY)
        history = client.get_telemetry_history("2024-05-01", "2024-05-07")
        assert isinstance(history, HistoryData)
        assert len(history.time_series) == 2
        method, url, params, _ = sent(session)
        assert method == "GET"
        assert url == f"{BASE}/telemetry_history"
        assert params == {"kind": ["charge"], "start_date": ["2024-05-01"], "end_date": ["2024-05-07"]}

    def test_time_zone_only_when_given(self, client, session, respond):
        session.request.return_value = respond(200, HISTORY)
        client.get_telemetry_history(date(2024, 5, 1), date(2024, 5, 7), "America/Denver")
        params = sent(session)[2]
        assert params["time_zone"] == ["America/Denver"]
        assert params["start_date"] == ["2024-05-01"]
        client.get_telemetry_history("2024-05-01", "2024-05-07", "")
        assert "time_zone" not in sent(session)[2]

    def test_energy_history(self, client, session, respond):
        session.request.return_value = respond(200, HISTORY)
        history = client.get_energy_history("2024-05-01", "2024-05-07", "day")
        assert history.time_series[0].solar_energy_exported == pytest.approx(30123.4)
        assert history.time_series[1].grid_energy_imported is None
        _, url, params, _ = sent(session)
        assert url == f"{BASE}/calendar_history"
        assert params["kind"] == ["energy"]
        assert params["period"] == ["day"]

    def test_backup_history(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {"time_series": []}})
        client.get_backup_history("2024-01-01", "2024-12-31", "year", "UTC")
        params = sent(session)[2]
        assert params["kind"] == ["backup"]
        assert params["time_zone"] == ["UTC"]

    @pytest.mark.parametrize("kind,period", [("energy", "lifetime"), ("energy", "hour"), ("power", "day")])
    def test_invalid_kind_or_period(self, client, session, kind, period):
        with pytest.raises(ValueError):
            client.get_calendar_history(kind, "2024-01-01", "2024-01-07", period)
        session.request.assert_not_called()


class TestCommands:
    def test_set_backup_reserve(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {"code": 201, "message": "Updated"}})
        client.set_backup_reserve(20)
        assert sent(session) == ("POST", f"{BASE}/backup", {}, {"backup_reserve_percent": 20})

    @pytest.mark.parametrize("percent", [-1, 101])
    def test_set_backup_reserve_range(self, client, session, percent):
        with pytest.raises(ValueError):
            client.set_backup_reserve(percent)
        session.request.assert_not_called()

    def test_set_site_name(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {"code": 201}})
        client.set_site_name("My Home")
        assert sent(session) == ("POST", f"{BASE}/site_name", {}, {"site_name": "My Home"})

    def test_set_site_name_empty(self, client, session):
        with pytest.raises(ValueError):
            client.set_site_name("")
        session.request.assert_not_called()

    @pytest.mark.parametrize("enabled", [True, False])
    def test_set_storm_mode(self, client, session, respond, enabled):
        session.request.return_value = respond(200, {"response": {"code": 201}})
        client.set_storm_mode(enabled)
        assert sent(session) == ("POST", f"{BASE}/storm_mode", {}, {"enabled": enabled})

    def test_convenience_commands(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {}})
        client.set_minimum_backup_reserve()
        assert sent(session)[3] == {"backup_reserve_percent": 5}
        client.set_maximum_backup_reserve()
        assert sent(session)[3] == {"backup_reserve_percent": 100}
        client.enable_storm_watch()
        assert sent(session)[3] == {"enabled": True}
        client.disable_storm_watch()
        assert sent(session)[3] == {"enabled": False}


class TestConvenienceHistory:
    def test_date_ranges(self, client, session, respond):
        session.request.return_value = respond(200, HISTORY)
        today = date.fromtimestamp(client.clock())

        client.get_recent_telemetry_data()
        params = sent(session)[2]
        assert params["kind"] == ["charge"]
        assert params["end_date"] == [today.isoformat()]
        assert params["start_date"] == [(today - timedelta(days=7)).isoformat()]

        client.get_daily_energy_data()
        params = sent(session)[2]
        assert params["period"] == ["day"]
        assert params["start_date"] == [(today - timedelta(days=7)).isoformat()]

        client.get_weekly_energy_data()
        assert sent(session)[2]["period"] == ["week"]

        client.get_monthly_energy_data()
        params = sent(session)[2]
        assert params["period"] == ["month"]
        assert params["start_date"] == [today.replace(year=today.year - 1).isoformat()]


class TestUnsupported:
    @pytest.mark.parametrize("name,args", [
        ("get_operation", ()),
        ("get_system_status", ()),
        ("get_sitemaster", ()),
        ("get_networks", ()),
        ("get_grid_faults", ()),
        ("get_meters", ("site",)),
    ])
    def test_raises_without_network(self, client, session, name, args):
        with pytest.raises(UnsupportedError) as exc:
            getattr(client, name)(*args)
        assert exc.value.operation == name
        assert exc.value.reason.startswith("Fleet API does not")
        session.request.assert_not_called()
        session.post.assert_not_called()


class TestNullFields:
    def test_live_status_nulls_use_defaults(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {
            "solar_power": 100, "grid_status": None, "island_status": None,
            "storm_mode_active": None, "grid_services_active": None, "timestamp": None}})
        grid = client.get_grid_status()
        assert grid.grid_status == ""
        assert grid.grid_services_active is False
        assert client.get_status().start_time is None
        assert client.get_soe().percentage == 0
        assert set(client.get_meters_aggregates()) == {"solar"}

    def test_site_info_nulls_use_defaults(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {
            "site_name": None, "nameplate_power": None, "installation_time_zone": None,
            "max_site_meter_power_ac": None, "min_site_meter_power_ac": None, "battery_count": None,
            "components": None}})
        info = client.get_site_info()
        assert info.site_name == ""
        assert info.timezone == ""
        assert info.max_system_power_kw == 0
        assert info.max_site_meter_power_kw == 0

    def test_null_response_is_empty(self, client, session, respond):
        session.request.return_value = respond(200, {"response": None})
        assert client.get_grid_status().grid_status == ""

    def test_null_history_points(self, client, session, respond):
        session.request.return_value = respond(200, {"response": {"period": None, "time_series": [
            {"timestamp": "2024-05-11T00:00:00-07:00", "solar_energy_exported": None}]}})
        history = client.get_energy_history("2024-05-01", "2024-05-07", "day")
        assert history.period is None
        assert history.time_series[0].solar_energy_exported is None
