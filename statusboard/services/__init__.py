from statusboard.services.registry import (
    MonitorConfig,
    Service,
    environments_of,
    load_config,
    parse_config,
)

__all__ = [
    "MonitorConfig",
    "Service",
    "environments_of",
    "load_config",
    "parse_config",
]
