"""In-memory filter → sort → paginate pipeline.

The module-level functions are pure. ``LocalEngine`` owns the source
collection and commits results into the store synchronously.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, List, Optional, Sequence

from gridsync.shared.core import events
from gridsync.shared.core.configuration import GridConfig
from gridsync.shared.core.paths import ABSENT, cell_text, resolve_path

from ..state.store import StateStore
from ..state.view_state import RowId

logger = logging.getLogger(__name__)


# ============================================================================
# Pure transforms
# ============================================================================


def matching_indices(rows: Sequence[Any], term: str, keys: Sequence[str]) -> List[int]:
    """Indices of rows where any of ``keys`` contains ``term`` (case-insensitive).

    An empty term matches every row.
    """
    if not term:
        return list(range(len(rows)))
    needle = term.lower()
    return [
        i for i, row in enumerate(rows)
        if any(needle in cell_text(row, key).lower() for key in keys)
    ]


def _sort_value(row: Any, key: str) -> Any:
    value = resolve_path(row, key)
    return None if value is ABSENT else value


def compare_values(a: Any, b: Any) -> int:
    """Natural ordering with ``None`` first and a string fallback for mixed types."""
    if a is None or b is None:
        return (a is not None) - (b is not None)
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


def sort_indices(
    rows: Sequence[Any],
    indices: Sequence[int],
    column: Optional[str],
    direction: str = "asc",
) -> List[int]:
    """Stable sort of ``indices`` by the value of ``column`` in ``rows``."""
    if not column:
        return list(indices)
    keyfunc = functools.cmp_to_key(compare_values)
    return sorted(
        indices,
        key=lambda i: keyfunc(_sort_value(rows[i], column)),
        reverse=(direction == "desc"),
    )


def paginate(items: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """Slice ``[(page-1)*page_size, page*page_size)``."""
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def filter_rows(rows: Sequence[Any], term: str, keys: Sequence[str]) -> List[Any]:
    return [rows[i] for i in matching_indices(rows, term, keys)]


def sort_rows(rows: Sequence[Any], column: Optional[str], direction: str = "asc") -> List[Any]:
    return [rows[i] for i in sort_indices(rows, range(len(rows)), column, direction)]


# ============================================================================
# Engine
# ============================================================================


class LocalEngine:
    """Synchronous engine over an in-memory row collection."""

    def __init__(self, config: GridConfig, rows: Optional[Sequence[Any]] = None) -> None:
        self.config = config
        self.source: List[Any] = list(config.data if rows is None else rows)
        self._filtered: List[int] = list(range(len(self.source)))

    def row_id(self, index: int) -> RowId:
        id_field = self.config.selection.id_field
        if id_field:
            value = resolve_path(self.source[index], id_field)
            return index if value is ABSENT else value
        return index

    def filtered_rows(self) -> List[Any]:
        return [self.source[i] for i in self._filtered]

    def reconcile(self, store: StateStore) -> None:
        """Run filter → sort → paginate for the store's state and commit."""
        keys = self.config.searchable_keys()
        indices = matching_indices(self.source, store.search_term, keys)
        indices = sort_indices(self.source, indices, store.sort_column, store.sort_direction)
        self._filtered = indices

        page = store.clamp_page(len(indices))
        visible = paginate(indices, page, store.page_size)
        logger.debug(
            f"Local pipeline: {len(self.source)} source, {len(indices)} matching, "
            f"{len(visible)} on page {page}"
        )
        store.commit_rows(
            [self.source[i] for i in visible],
            len(indices),
            [self.row_id(i) for i in visible],
            universe=[(self.row_id(i), self.source[i]) for i in indices],
        )

    # --- Source data management ---

    def set_data(self, rows: Sequence[Any], store: StateStore) -> None:
        self.source = list(rows)
        if len(store.selection):
            store.clear_selection()
        store.clamp_page(0)
        store.bus.publish(events.TOPIC_DATA_CHANGE, events.create_data_change_event(self.source))
        store.data_changed()

    def add_row(self, row: Any, store: StateStore) -> None:
        self.source.append(row)
        store.bus.publish(events.TOPIC_ROW_ADD, events.create_row_event(row, len(self.source) - 1))
        store.data_changed()

    def remove_row(self, index: int, store: StateStore) -> Any:
        removed_id = self.row_id(index)
        removed = self.source.pop(index)
        old_ids = store.selection.ordered_ids()
        if self.config.selection.id_field:
            store.selection.select(removed_id, False)
        else:
            store.selection.shift_after_removal(index)
        if store.selection.ordered_ids() != old_ids:
            store.notify_selection_changed(old_ids)
        store.bus.publish(events.TOPIC_ROW_REMOVE, events.create_row_event(removed, index))
        store.data_changed()
        return removed

    def update_row(self, index: int, changes: dict, store: StateStore) -> Any:
        current = self.source[index]
        updated = {**current, **changes} if isinstance(current, dict) else changes
        self.source[index] = updated
        store.bus.publish(events.TOPIC_ROW_UPDATE, events.create_row_event(updated, index))
        store.data_changed()
        return updated
