"""可观测性模块"""

from elastic_devtools.observability.logging import (
    configure_from_settings,
    configure_logging,
    get_logger,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
]
