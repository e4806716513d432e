"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: EnvConfigProvider, the immutable *Config records
Hidden: Config sources, validation logic, environment parsing
"""

from .provider import (
    TARGET_PORT,
    ConfigProvider,
    DeployConfig,
    EnvConfigProvider,
    PGConnectionConfig,
    PollingConfig,
    SecurityGroupConfig,
    ViewerConfig,
    mask_password,
)

__all__ = [
    "TARGET_PORT",
    "ConfigProvider",
    "DeployConfig",
    "EnvConfigProvider",
    "PGConnectionConfig",
    "PollingConfig",
    "SecurityGroupConfig",
    "ViewerConfig",
    "mask_password",
]
