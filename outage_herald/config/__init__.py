"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    AccountConfig,
    ClientCertificateConfig,
    DefaultsConfig,
    FeedsConfig,
    HeraldConfig,
    IRCConfig,
    ServerConfig,
)

__all__ = [
    "AccountConfig",
    "ClientCertificateConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DefaultsConfig",
    "FeedsConfig",
    "HeraldConfig",
    "IRCConfig",
    "ServerConfig",
]
