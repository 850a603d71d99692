"""Config module exports."""

from covhub.config.loader import load_config
from covhub.config.models import (
    CovhubConfig,
    DiffConfig,
    LoggingConfig,
    ReportConfig,
    ServerConfig,
)

__all__ = [
    "load_config",
    "CovhubConfig",
    "DiffConfig",
    "LoggingConfig",
    "ReportConfig",
    "ServerConfig",
]
