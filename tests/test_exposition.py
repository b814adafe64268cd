from prometheus_client import generate_latest
from prometheus_client.parser import text_string_to_metric_families

from conftest import FakeClient, thermostat_json
from ecobee_exporter.collector import EcobeeCollector
from ecobee_exporter.ecobee import EcobeeTransportError
from ecobee_exporter.exposition import SampleCollector, build_registry


def test_describe_lists_every_family(fake_client) -> None:
    adapter = SampleCollector(EcobeeCollector.with_prefix(fake_client, "ecobee"))

    names = [family.name for family in adapter.describe()]

    assert len(names) == 11
    assert "ecobee_mode" in names
    assert fake_client.selections == []


def test_registry_exposes_samples(fake_client) -> None:
    registry = build_registry(EcobeeCollector.with_prefix(fake_client, "ecobee"))

    assert registry.get_sample_value(
        "ecobee_actual_temperature",
        {"thermostat_id": "311019854321", "thermostat_name": "Upstairs"},
    ) == 70.5
    assert registry.get_sample_value(
        "ecobee_mode",
        {"thermostat_id": "311019854321", "thermostat_name": "Upstairs", "mode": "cool"},
    ) == 1.0


def test_text_exposition(fake_client) -> None:
    registry = build_registry(EcobeeCollector.with_prefix(fake_client, "ecobee"))

    output = generate_latest(registry).decode()

    families = {family.name: family for family in text_string_to_metric_families(output)}
    assert families["ecobee_temperature"].type == "gauge"
    hvac = families["ecobee_currenthvacmode"].samples
    assert len(hvac) == 1
    assert hvac[0].labels == {
        "thermostat_id": "311019854321", "thermostat_name": "Upstairs", "current_hvac_mode": "auto",
    }
    assert hvac[0].value == 0.0


def test_failed_scrape_exposes_nothing() -> None:
    client = FakeClient(thermostat_error=EcobeeTransportError("down"))
    registry = build_registry(EcobeeCollector.with_prefix(client, "ecobee"))

    assert "ecobee_" not in generate_latest(registry).decode()


def test_partial_scrape_exposes_fetch_time() -> None:
    client = FakeClient(thermostats=[thermostat_json()], summary_error=EcobeeTransportError("down"))
    registry = build_registry(EcobeeCollector.with_prefix(client, "ecobee"))

    output = generate_latest(registry).decode()

    assert "ecobee_fetch_time " in output
    assert "ecobee_actual_temperature" not in output
