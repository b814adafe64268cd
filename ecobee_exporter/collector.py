"""
Ecobee collector module
Runs one scrape against the Ecobee API and maps the result into gauge samples
"""
import logging
import time
from typing import Iterator, List, Tuple

from ecobee_exporter.metrics import DescriptorRegistry, MetricDescriptor, MetricKey
from ecobee_exporter.models import RemoteSensor, Sample, Selection, Thermostat, ThermostatSummary

logger = logging.getLogger(__name__)

# Equipment status flag reported for each "mode" label value
MODE_FLAGS: List[Tuple[str, str]] = [
    ("cool", "comp_cool1"),
    ("heat", "heat_pump"),
    ("aux", "aux_heat1"),
]


def _flag(value: bool) -> float:
    return 1.0 if value else 0.0


def _parse_float(raw: str) -> float:
    """float() without its leniency for digit separators and padding"""
    if "_" in raw or raw != raw.strip():
        raise ValueError(f"invalid number {raw!r}")
    return float(raw)


class EcobeeCollector:
    """
    Gathers Ecobee thermostat metrics on demand.

    The client only needs get_thermostats(selection) and
    get_thermostat_summary(selection). Nothing is cached between cycles, so
    overlapping scrapes are safe as long as the client is.
    """

    def __init__(self, client, registry: DescriptorRegistry):
        self.client = client
        self.registry = registry

    @classmethod
    def with_prefix(cls, client, metric_prefix: str) -> "EcobeeCollector":
        return cls(client, DescriptorRegistry.build(metric_prefix))

    def describe(self) -> Iterator[MetricDescriptor]:
        return self.registry.describe()

    def _sample(self, key: MetricKey, value: float, *label_values: str) -> Sample:
        return Sample(self.registry[key], float(value), tuple(label_values))

    def collect(self) -> Iterator[Sample]:
        """Fetch thermostats and summaries, yielding samples as they are mapped"""
        start = time.monotonic()
        try:
            thermostats = self.client.get_thermostats(Selection(
                selection_type="registered",
                include_sensors=True,
                include_runtime=True,
                include_settings=True,
            ))
        except Exception as e:
            logger.error(f"Error fetching thermostats: {e}")
            return

        elapsed = time.monotonic() - start
        yield self._sample(MetricKey.FETCH_TIME, elapsed)

        try:
            summaries = self.client.get_thermostat_summary(Selection(
                selection_type="thermostats",
                selection_match=",".join(t.identifier for t in thermostats),
                include_equipment_status=True,
            ))
        except Exception as e:
            logger.error(f"Error fetching thermostat summary: {e}")
            return

        for summary in summaries:
            yield from self._summary_samples(summary)

        for thermostat in thermostats:
            yield from self._thermostat_samples(thermostat)

    def _summary_samples(self, summary: ThermostatSummary) -> Iterator[Sample]:
        status = summary.equipment_status
        yield self._sample(MetricKey.FAN_STATUS, _flag(status.fan), summary.identifier, summary.name)
        for mode, flag in MODE_FLAGS:
            yield self._sample(
                MetricKey.MODE, _flag(getattr(status, flag)), summary.identifier, summary.name, mode
            )

    def _thermostat_samples(self, thermostat: Thermostat) -> Iterator[Sample]:
        labels = (thermostat.identifier, thermostat.name)
        runtime = thermostat.runtime
        if runtime.connected:
            yield self._sample(MetricKey.ACTUAL_TEMPERATURE, runtime.actual_temperature / 10, *labels)
            yield self._sample(MetricKey.TARGET_TEMPERATURE_MAX, runtime.desired_cool / 10, *labels)
            yield self._sample(MetricKey.TARGET_TEMPERATURE_MIN, runtime.desired_heat / 10, *labels)
            # Mode lives in the label only
            yield self._sample(MetricKey.CURRENT_HVAC_MODE, 0, *labels, thermostat.settings.hvac_mode)

        for sensor in thermostat.remote_sensors:
            yield from self._sensor_samples(labels, sensor)

    def _sensor_samples(self, thermostat_labels: Tuple[str, str], sensor: RemoteSensor) -> Iterator[Sample]:
        labels = thermostat_labels + (sensor.id, sensor.name, sensor.type)
        yield self._sample(MetricKey.IN_USE, _flag(sensor.in_use), *labels)

        for capability in sensor.capability:
            if capability.type == "temperature":
                try:
                    value = _parse_float(capability.value)
                except ValueError as e:
                    logger.error(f"Invalid temperature for sensor {sensor.id}: {e}")
                    continue
                yield self._sample(MetricKey.TEMPERATURE, value / 10, *labels)
            elif capability.type == "humidity":
                try:
                    value = _parse_float(capability.value)
                except ValueError as e:
                    logger.error(f"Invalid humidity for sensor {sensor.id}: {e}")
                    continue
                yield self._sample(MetricKey.HUMIDITY, value, *labels)
            elif capability.type == "occupancy":
                if capability.value == "true":
                    yield self._sample(MetricKey.OCCUPANCY, 1.0, *labels)
                elif capability.value == "false":
                    yield self._sample(MetricKey.OCCUPANCY, 0.0, *labels)
                else:
                    logger.error(f"Unknown sensor occupancy value {capability.value!r}")
            else:
                logger.info(f"Ignoring sensor capability {capability.type!r}")
