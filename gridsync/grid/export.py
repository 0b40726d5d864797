"""Point-in-time snapshots for exporters.

File encoders (CSV, spreadsheet, PDF) live outside this package; they read
a ``ViewSnapshot`` and the rows selected by ``ExportOptions``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from gridsync.shared.core.paths import cell_text

from .state.view_state import RowId


@dataclass(frozen=True)
class ExportOptions:
    """Which rows an exporter receives."""
    selected_only: bool = False
    visible_only: bool = False


@dataclass(frozen=True)
class ViewSnapshot:
    """Immutable copy of what the table shows at one moment."""
    page: int
    page_size: int
    total_count: int
    sort_column: Optional[str]
    sort_direction: str
    search_term: str
    rows: Tuple[Any, ...]
    selection: Tuple[RowId, ...]
    selected_rows: Tuple[Any, ...]
    all_rows: Tuple[Any, ...]
    column_keys: Tuple[str, ...] = ()
    taken_at: datetime = field(default_factory=datetime.now)

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total_count // self.page_size))

    def export_rows(self, options: Optional[ExportOptions] = None) -> List[Any]:
        """Rows for export.

        Selected rows win when ``selected_only`` is set and something is
        selected; otherwise ``visible_only`` gives the current page and the
        default is every matching row available to the table.
        """
        options = options or ExportOptions()
        if options.selected_only and self.selection:
            return list(self.selected_rows)
        if options.visible_only:
            return list(self.rows)
        return list(self.all_rows)

    def as_records(self, options: Optional[ExportOptions] = None) -> List[Dict[str, str]]:
        """String projection of the export rows, one dict per row, keyed by column."""
        return [
            {key: cell_text(row, key) for key in self.column_keys}
            for row in self.export_rows(options)
        ]
