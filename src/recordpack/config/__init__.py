from .job import DistributorConfig, JobConfig
from .properties import PropertiesFile, parse_properties
from .resources import RecordStoreResources, Resources

__all__ = [
    "DistributorConfig",
    "JobConfig",
    "PropertiesFile",
    "parse_properties",
    "RecordStoreResources",
    "Resources",
]
