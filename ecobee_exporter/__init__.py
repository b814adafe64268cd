"""
Ecobee Prometheus exporter package.

Exports:
- DescriptorRegistry
- EcobeeCollector
- EcobeeClient
"""
from ecobee_exporter.collector import EcobeeCollector
from ecobee_exporter.config import EXPORTER_VERSION as __version__
from ecobee_exporter.ecobee import EcobeeClient
from ecobee_exporter.metrics import DescriptorRegistry

__all__ = [
    "DescriptorRegistry",
    "EcobeeClient",
    "EcobeeCollector",
]
