"""Table view synchronization.

Architecture:
- state: ViewState and the StateStore that owns it
- engines: local filter/sort pipeline, remote sync engine, mode selector
- selection: SelectionTracker
- table: DataTable facade
"""

from .table import DataTable
from .export import ExportOptions, ViewSnapshot

__all__ = ["DataTable", "ExportOptions", "ViewSnapshot"]
