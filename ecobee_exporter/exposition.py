"""
Prometheus exposition module
Adapts the sample stream of EcobeeCollector to prometheus_client metric families
"""
import logging
from typing import Dict, Iterator

from prometheus_client import CollectorRegistry
from prometheus_client.core import GaugeMetricFamily

from ecobee_exporter.collector import EcobeeCollector
from ecobee_exporter.metrics import MetricDescriptor

logger = logging.getLogger(__name__)


def _family(descriptor: MetricDescriptor) -> GaugeMetricFamily:
    return GaugeMetricFamily(descriptor.name, descriptor.help, labels=list(descriptor.label_names))


class SampleCollector:
    """Custom prometheus_client collector running one Ecobee scrape per collect()"""

    def __init__(self, collector: EcobeeCollector):
        self.collector = collector

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for descriptor in self.collector.describe():
            yield _family(descriptor)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families: Dict[str, GaugeMetricFamily] = {
            descriptor.name: _family(descriptor) for descriptor in self.collector.describe()
        }
        count = 0
        for sample in self.collector.collect():
            families[sample.descriptor.name].add_metric(list(sample.label_values), sample.value)
            count += 1
        logger.debug(f"Collected {count} samples")

        for family in families.values():
            if family.samples:
                yield family


def build_registry(collector: EcobeeCollector) -> CollectorRegistry:
    """Create a registry exposing only the Ecobee metrics"""
    registry = CollectorRegistry(auto_describe=True)
    registry.register(SampleCollector(collector))
    return registry
