from .loader import load_config, load_config_with_overrides
from .schema import (
    APIConfig,
    DataSourceVersions,
    OrganismConfig,
    PipelineConfig,
    ProviderConfig,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "DataSourceVersions",
    "OrganismConfig",
    "ProviderConfig",
    "APIConfig",
]
