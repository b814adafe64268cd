from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from ecobee_exporter.models import Selection, Thermostat, ThermostatSummary, EquipmentStatus


def thermostat_json(
    identifier: str = "311019854321",
    name: str = "Upstairs",
    connected: bool = True,
    sensors: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {
        "identifier": identifier,
        "name": name,
        "runtime": {
            "connected": connected,
            "actualTemperature": 705,
            "desiredHeat": 680,
            "desiredCool": 760,
        },
        "settings": {"hvacMode": "auto"},
        "remoteSensors": sensors if sensors is not None else [],
    }


def sensor_json(sensor_id: str = "rs:100", name: str = "Bedroom", capabilities=None, in_use=True):
    return {
        "id": sensor_id,
        "name": name,
        "type": "ecobee3_remote_sensor",
        "inUse": in_use,
        "capability": [
            {"id": str(i), "type": kind, "value": value}
            for i, (kind, value) in enumerate(capabilities or [])
        ],
    }


class FakeClient:
    """Stands in for EcobeeClient, recording the selections it receives"""

    def __init__(self, thermostats=None, summaries=None, thermostat_error=None, summary_error=None):
        self.thermostats = [Thermostat(**t) for t in (thermostats or [])]
        self.summaries = summaries or []
        self.thermostat_error = thermostat_error
        self.summary_error = summary_error
        self.selections: List[Selection] = []
        self.session = MagicMock()
        self.tokens_cached = True

    def has_tokens(self) -> bool:
        return self.tokens_cached

    def get_thermostats(self, selection: Selection) -> List[Thermostat]:
        self.selections.append(selection)
        if self.thermostat_error:
            raise self.thermostat_error
        return self.thermostats

    def get_thermostat_summary(self, selection: Selection) -> List[ThermostatSummary]:
        self.selections.append(selection)
        if self.summary_error:
            raise self.summary_error
        return self.summaries


def summary(identifier="311019854321", name="Upstairs", running=""):
    return ThermostatSummary(
        identifier=identifier,
        name=name,
        connected=True,
        equipment_status=EquipmentStatus.from_status_string(running),
    )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient(
        thermostats=[
            thermostat_json(sensors=[
                sensor_json(capabilities=[("temperature", "725"), ("humidity", "41"), ("occupancy", "true")]),
            ]),
        ],
        summaries=[summary(running="fan,compCool1")],
    )
