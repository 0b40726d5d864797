"""GridSync package."""

from .grid.table import DataTable
from .shared.core.configuration import GridConfig
from .shared.core.event_bus import EventBus

__version__ = "0.3.0"

__all__ = ["DataTable", "GridConfig", "EventBus", "__version__"]
