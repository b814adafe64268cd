"""
Metric descriptor module
Fixed set of gauge descriptors (name, help, label names) for a metric prefix
"""
from enum import Enum
from typing import Dict, Iterator, List, NamedTuple, Tuple


class MetricKey(str, Enum):
    FETCH_TIME = "fetch_time"
    ACTUAL_TEMPERATURE = "actual_temperature"
    TARGET_TEMPERATURE_MAX = "target_temperature_max"
    TARGET_TEMPERATURE_MIN = "target_temperature_min"
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    OCCUPANCY = "occupancy"
    IN_USE = "in_use"
    CURRENT_HVAC_MODE = "currenthvacmode"
    FAN_STATUS = "fan_status"
    MODE = "mode"


class MetricDescriptor(NamedTuple):
    name: str
    help: str
    label_names: Tuple[str, ...]


# Label schemas
RUNTIME_LABELS = ("thermostat_id", "thermostat_name")
SENSOR_LABELS = RUNTIME_LABELS + ("sensor_id", "sensor_name", "sensor_type")
HVAC_MODE_LABELS = RUNTIME_LABELS + ("current_hvac_mode",)
MODE_LABELS = RUNTIME_LABELS + ("mode",)

# (key, help, labels) in describe order
METRIC_DEFINITIONS: List[Tuple[MetricKey, str, Tuple[str, ...]]] = [
    (MetricKey.FETCH_TIME, "elapsed time fetching data via Ecobee API", ()),
    (MetricKey.ACTUAL_TEMPERATURE, "thermostat-averaged current temperature", RUNTIME_LABELS),
    (MetricKey.TARGET_TEMPERATURE_MAX, "maximum temperature for thermostat to maintain", RUNTIME_LABELS),
    (MetricKey.TARGET_TEMPERATURE_MIN, "minimum temperature for thermostat to maintain", RUNTIME_LABELS),
    (MetricKey.TEMPERATURE, "temperature reported by a sensor in degrees", SENSOR_LABELS),
    (MetricKey.HUMIDITY, "humidity reported by a sensor in percent", SENSOR_LABELS),
    (MetricKey.OCCUPANCY, "occupancy reported by a sensor (0 or 1)", SENSOR_LABELS),
    (MetricKey.IN_USE, "is sensor being used in thermostat calculations (0 or 1)", SENSOR_LABELS),
    (MetricKey.CURRENT_HVAC_MODE, "current hvac mode of thermostat", HVAC_MODE_LABELS),
    (MetricKey.FAN_STATUS, "current status of the fan", RUNTIME_LABELS),
    (MetricKey.MODE, "current operating mode", MODE_LABELS),
]


class DescriptorRegistry:
    """
    Immutable mapping from MetricKey to MetricDescriptor.

    Every descriptor name is "{prefix}_{key}". Two registries with the same
    prefix exposed through one metrics namespace will collide; that is left
    to the caller.
    """

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._descriptors: Dict[MetricKey, MetricDescriptor] = {
            key: MetricDescriptor(f"{prefix}_{key.value}", help_text, labels)
            for key, help_text, labels in METRIC_DEFINITIONS
        }

    @classmethod
    def build(cls, prefix: str) -> "DescriptorRegistry":
        return cls(prefix)

    def get(self, key: MetricKey) -> MetricDescriptor:
        return self._descriptors[key]

    def __getitem__(self, key: MetricKey) -> MetricDescriptor:
        return self._descriptors[key]

    def describe(self) -> Iterator[MetricDescriptor]:
        """Yield all descriptors in definition order"""
        for key, _, _ in METRIC_DEFINITIONS:
            yield self._descriptors[key]

    def __len__(self) -> int:
        return len(self._descriptors)
