"""配置管理模块"""

from elastic_devtools.config.settings import (
    Environment,
    Settings,
    detect_environment,
    get_settings,
    reload_settings,
)

__all__ = [
    "Environment",
    "Settings",
    "detect_environment",
    "get_settings",
    "reload_settings",
]
