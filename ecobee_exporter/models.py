"""
Data models module
Pydantic models for Ecobee API records, emitted samples and health responses
"""
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field

from ecobee_exporter.metrics import MetricDescriptor


class EcobeeRecord(BaseModel):
    """Base for records parsed from Ecobee JSON (camelCase aliases)"""

    class Config:
        populate_by_name = True
        extra = "ignore"


class Selection(EcobeeRecord):
    selection_type: str = Field(alias="selectionType", description="'registered', 'thermostats', ...")
    selection_match: str = Field("", alias="selectionMatch", description="Comma separated identifiers")
    include_runtime: bool = Field(False, alias="includeRuntime")
    include_settings: bool = Field(False, alias="includeSettings")
    include_sensors: bool = Field(False, alias="includeSensors")
    include_equipment_status: bool = Field(False, alias="includeEquipmentStatus")

    def to_api(self) -> Dict[str, Any]:
        """Serialize with vendor keys, leaving out unset include flags"""
        data = self.model_dump(by_alias=True)
        return {key: value for key, value in data.items() if value or not key.startswith("include")}


class Capability(EcobeeRecord):
    id: str = ""
    type: str
    value: str = ""


class RemoteSensor(EcobeeRecord):
    id: str
    name: str = ""
    type: str = ""
    in_use: bool = Field(False, alias="inUse")
    capability: List[Capability] = Field(default_factory=list)


class Runtime(EcobeeRecord):
    connected: bool = False
    actual_temperature: int = Field(0, alias="actualTemperature", description="Tenths of a degree")
    desired_heat: int = Field(0, alias="desiredHeat", description="Tenths of a degree")
    desired_cool: int = Field(0, alias="desiredCool", description="Tenths of a degree")


class Settings(EcobeeRecord):
    hvac_mode: str = Field("", alias="hvacMode")


class Thermostat(EcobeeRecord):
    identifier: str
    name: str = ""
    runtime: Runtime = Field(default_factory=Runtime)
    settings: Settings = Field(default_factory=Settings)
    remote_sensors: List[RemoteSensor] = Field(default_factory=list, alias="remoteSensors")


class EquipmentStatus(EcobeeRecord):
    heat_pump: bool = Field(False, alias="heatPump")
    heat_pump2: bool = Field(False, alias="heatPump2")
    heat_pump3: bool = Field(False, alias="heatPump3")
    comp_cool1: bool = Field(False, alias="compCool1")
    comp_cool2: bool = Field(False, alias="compCool2")
    aux_heat1: bool = Field(False, alias="auxHeat1")
    aux_heat2: bool = Field(False, alias="auxHeat2")
    aux_heat3: bool = Field(False, alias="auxHeat3")
    fan: bool = False
    humidifier: bool = False
    dehumidifier: bool = False
    ventilator: bool = False
    economizer: bool = False
    comp_hot_water: bool = Field(False, alias="compHotWater")
    aux_hot_water: bool = Field(False, alias="auxHotWater")

    @classmethod
    def from_status_string(cls, status: str) -> "EquipmentStatus":
        """Build from the comma separated list of running equipment, e.g. 'fan,compCool1'"""
        running = {item.strip() for item in status.split(",") if item.strip()}
        aliases = {field.alias or name for name, field in cls.model_fields.items()}
        return cls(**{alias: True for alias in running & aliases})


class ThermostatSummary(EcobeeRecord):
    identifier: str
    name: str = ""
    connected: bool = False
    equipment_status: EquipmentStatus = Field(default_factory=EquipmentStatus)


class Sample(NamedTuple):
    descriptor: MetricDescriptor
    value: float
    label_values: Tuple[str, ...] = ()


class HealthStatus(BaseModel):
    status: str = Field(description="Overall health status: 'healthy' or 'unhealthy'")
    timestamp: datetime = Field(description="UTC timestamp of health check")
    version: str = Field(description="Exporter version")
    metric_prefix: str = Field(description="Prefix applied to every exported metric")
    token_cached: bool = Field(description="True if an access or refresh token is available")
    last_error: Optional[str] = Field(None, description="Reason the exporter is unhealthy, if any")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2025-10-08T12:30:00Z",
                "version": "1.0.0",
                "metric_prefix": "ecobee",
                "token_cached": True,
                "last_error": None
            }
        }
