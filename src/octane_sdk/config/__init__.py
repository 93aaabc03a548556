"""
Configuration package for the Octane SDK.

Exposes the configuration models and the settings loader.
"""

from octane_sdk.config.config_models import (
    ConnectionSettings,
    LoggingConfig,
    OctaneConfig,
    OctaneCredentials,
    OctaneSettings,
    RequestHandlerParams,
)
from octane_sdk.config.loader import load_config

__all__: list[str] = [
    'ConnectionSettings',
    'LoggingConfig',
    'OctaneConfig',
    'OctaneCredentials',
    'OctaneSettings',
    'RequestHandlerParams',
    'load_config',
]
