"""
Shared Core Module
==================

Event system, configuration, error taxonomy and path helpers.
"""

# Event System
from .event_bus import EventBus, EventPayload, EventHandler
from . import events

# Errors
from .errors import (
    GridSyncError,
    ConfigurationError,
    ViewValidationError,
    TransportError,
    MalformedResponseError,
)

# Paths
from .paths import ABSENT, resolve_path, resolve_or_none, flatten_object

# Configuration
from .configuration import (
    AjaxConfig,
    ColumnConfig,
    ConfigManager,
    GridConfig,
    RemoteHooks,
    ResponsePaths,
    SelectionConfig,
    ValidationLevel,
    build_grid_config,
)

# Logging
from .logging_config import configure_logging

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "EventHandler",
    "events",
    # Errors
    "GridSyncError",
    "ConfigurationError",
    "ViewValidationError",
    "TransportError",
    "MalformedResponseError",
    # Paths
    "ABSENT",
    "resolve_path",
    "resolve_or_none",
    "flatten_object",
    # Configuration
    "AjaxConfig",
    "ColumnConfig",
    "ConfigManager",
    "GridConfig",
    "RemoteHooks",
    "ResponsePaths",
    "SelectionConfig",
    "ValidationLevel",
    "build_grid_config",
    # Logging
    "configure_logging",
]
