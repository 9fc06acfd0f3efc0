"""Pydantic models for Fleet API responses and the data returned by the client.

Response models (*Response) mirror the upstream JSON. Upstream fields that
may be missing are Optional with a None default so that "absent" and zero
stay distinguishable.

Data models (*Data) are what the Powerwall client hands back to callers.
They keep the shape of the local Powerwall gateway API responses,
filled from whatever the Fleet API provides.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pyfleetapi.codecs import Duration, NonIsoTime


class RateLimitConfig(BaseModel):
    """Fleet API request ceilings"""
    realtime_data_rpm: int = 60  # Tesla's limit for live data
    commands_rpm: int = 30  # Tesla's limit for commands
    max_monthly_cost: int = 10  # $10 free tier


###############################################################################
# Fleet API responses

class FleetResponse(BaseModel):
    """
    Base for upstream payloads. A JSON null is treated like a missing key,
    so every field falls back to its default instead of failing validation.
    """

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class EnergyProduct(FleetResponse):
    """An entry from /api/1/products (energy site or vehicle)"""
    energy_site_id: Optional[int] = None
    device_type: Optional[str] = None
    resource_type: Optional[str] = None  # "solar", "battery" (vehicles have none)
    site_name: Optional[str] = None
    id: Optional[Any] = None
    gateway_id: Optional[str] = None
    asset_site_id: Optional[str] = None
    warp_site_number: Optional[str] = None
    energy_left: Optional[float] = None
    total_pack_energy: Optional[float] = None
    percentage_charged: Optional[float] = None
    battery_type: Optional[str] = None
    battery_power: Optional[float] = None
    storm_mode_enabled: Optional[bool] = None
    components: Optional[Dict[str, Any]] = None
    features: Optional[Dict[str, Any]] = None
    # Vehicle entries
    vin: Optional[str] = None
    display_name: Optional[str] = None


class ProductsResponse(FleetResponse):
    response: List[EnergyProduct] = Field(default_factory=list)
    count: int = 0


class MeterAggregatesData(FleetResponse):
    """
    Statistics across all meters in a category ("site", "solar", "battery",
    "load"). The Fleet API only reports instant power, the remaining fields
    keep their zero defaults.
    """
    last_communication_time: Optional[datetime] = None
    instant_power: float = 0.0
    instant_reactive_power: float = 0.0
    instant_apparent_power: float = 0.0
    frequency: float = 0.0
    energy_exported: float = 0.0
    energy_imported: float = 0.0
    instant_average_voltage: float = 0.0
    instant_average_current: float = 0.0
    i_a_current: float = 0.0
    i_b_current: float = 0.0
    i_c_current: float = 0.0
    last_phase_voltage_communication_time: Optional[datetime] = None
    last_phase_power_communication_time: Optional[datetime] = None
    timeout: int = 0
    num_meters_aggregated: int = 0
    instant_total_current: float = 0.0


class LiveStatus(FleetResponse):
    solar_power: Optional[float] = None
    battery_power: Optional[float] = None
    load_power: Optional[float] = None
    grid_power: Optional[float] = None
    grid_services_power: Optional[float] = None
    generator_power: Optional[float] = None
    energy_left: Optional[float] = None
    total_pack_energy: Optional[float] = None
    percentage_charged: Optional[float] = None
    backup_capable: Optional[bool] = None
    grid_status: str = ""
    island_status: str = ""
    storm_mode_active: bool = False
    grid_services_active: bool = False
    timestamp: Optional[datetime] = None
    wall_connectors: Optional[List[Dict[str, Any]]] = None
    site: Optional[MeterAggregatesData] = None
    solar: Optional[MeterAggregatesData] = None
    battery: Optional[MeterAggregatesData] = None
    load: Optional[MeterAggregatesData] = None


class LiveStatusResponse(FleetResponse):
    response: LiveStatus = Field(default_factory=LiveStatus)


class SiteGateway(FleetResponse):
    device_id: Optional[str] = None
    din: Optional[str] = None
    serial_number: Optional[str] = None
    part_number: Optional[str] = None
    part_type: Optional[int] = None
    part_name: Optional[str] = None
    is_active: Optional[bool] = None
    site_id: Optional[str] = None
    firmware_version: Optional[str] = None
    updated_datetime: Optional[str] = None  # upstream sometimes sends malformed dates


class SiteComponents(FleetResponse):
    solar: bool = False
    solar_type: Optional[str] = None
    battery: bool = False
    grid: bool = False
    backup: bool = False
    gateway: Optional[str] = None
    load_meter: bool = False
    tou_capable: bool = False
    storm_mode_capable: bool = False
    battery_type: Optional[str] = None
    configurable: bool = False
    grid_services_enabled: bool = False
    gateways: List[SiteGateway] = Field(default_factory=list)
    batteries: List[Dict[str, Any]] = Field(default_factory=list)
    inverters: List[Dict[str, Any]] = Field(default_factory=list)


class SiteInfo(FleetResponse):
    id: Optional[str] = None
    site_name: str = ""
    backup_reserve_percent: Optional[float] = None
    default_real_mode: Optional[str] = None
    installation_date: Optional[str] = None
    user_settings: Optional[Dict[str, Any]] = None
    components: SiteComponents = Field(default_factory=SiteComponents)
    version: Optional[str] = None
    battery_count: int = 0
    tariff_content: Optional[Dict[str, Any]] = None
    tariff_id: Optional[str] = None
    nameplate_power: int = 0
    nameplate_energy: Optional[int] = None
    installation_time_zone: str = ""
    max_site_meter_power_ac: int = 0
    min_site_meter_power_ac: int = 0
    vpp_backup_reserve_percent: Optional[float] = None
    utility: Optional[str] = None


class SiteInfoResponse(FleetResponse):
    response: SiteInfo = Field(default_factory=SiteInfo)


class TimePoint(FleetResponse):
    """A single point of historical data"""
    timestamp: Optional[datetime] = None

    # Power data (15 minute intervals)
    solar_power: Optional[float] = None
    battery_power: Optional[float] = None
    grid_power: Optional[float] = None
    grid_services_power: Optional[float] = None
    generator_power: Optional[float] = None

    # Energy data (day, week, month, year)
    solar_energy_exported: Optional[float] = None
    grid_energy_imported: Optional[float] = None
    grid_energy_exported: Optional[float] = None
    battery_energy_exported: Optional[float] = None
    battery_energy_imported: Optional[float] = None
    consumer_energy_imported: Optional[float] = None


class HistoryData(FleetResponse):
    serial_number: Optional[str] = None
    period: Optional[str] = None  # "day", "week", "month", "year", "lifetime"
    time_series: List[TimePoint] = Field(default_factory=list)


class HistoryResponse(FleetResponse):
    response: HistoryData = Field(default_factory=HistoryData)


###############################################################################
# Client data

class StatusData(BaseModel):
    """
    General system information in the shape of the gateway "status" call.
    start_time and up_time_seconds use the gateway's own encodings.
    """
    din: str
    start_time: Optional[NonIsoTime] = None
    up_time_seconds: Duration = timedelta(0)
    is_new: bool = False
    version: str = ""
    git_hash: str = ""
    commission_count: int = 0
    device_type: str = ""
    sync_type: str = ""
    leader: str = ""
    followers: Optional[Any] = None
    cellular_disabled: bool = False


class GridCodeData(BaseModel):
    grid_code: Optional[str] = None
    grid_voltage_setting: int = 0
    grid_freq_setting: int = 0
    grid_phase_setting: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None
    distributor: Optional[str] = None
    utility: Optional[str] = None
    retailer: Optional[str] = None
    region: Optional[str] = None


class SiteInfoData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    site_name: str = ""
    timezone: str = ""
    max_site_meter_power_kw: int = Field(default=0, alias="max_site_meter_power_kW")
    min_site_meter_power_kw: int = Field(default=0, alias="min_site_meter_power_kW")
    measured_frequency: float = 0.0
    max_system_energy_kwh: float = Field(default=0.0, alias="max_system_energy_kWh")
    max_system_power_kw: float = Field(default=0.0, alias="max_system_power_kW")
    nominal_system_energy_kwh: float = Field(default=0.0, alias="nominal_system_energy_kWh")
    nominal_system_power_kw: float = Field(default=0.0, alias="nominal_system_power_kW")
    grid_code: GridCodeData = Field(default_factory=GridCodeData)


class GridStatusData(BaseModel):
    grid_status: str = ""
    grid_services_active: bool = False


class SOEData(BaseModel):
    """Total charge across all batteries, in percent"""
    percentage: float = 0.0
