"""
chainstage configuration.

Provides:
- Pydantic-based settings (environment variables, .env files)
- YAML project configuration describing target networks
"""

from chainstage.config.loader import (
    ChainstageConfig,
    get_config_path,
    load_config,
    save_config,
)
from chainstage.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "ChainstageConfig",
    "get_config_path",
    "load_config",
    "save_config",
]
