"""State Store - single owner of the table's ViewState.

All view mutations go through this class. Each accepted mutation emits one
``stateChange`` event and triggers exactly one reconciliation with whichever
engine the mode selector bound. Rejected mutations are reported on the
warning channel and leave the state untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from gridsync.shared.core import events
from gridsync.shared.core.configuration import GridConfig
from gridsync.shared.core.errors import ViewValidationError
from gridsync.shared.core.event_bus import EventBus

from ..selection import SelectionTracker
from .view_state import ReconcileReason, RowId, ViewState

logger = logging.getLogger(__name__)

Reconciler = Callable[[ReconcileReason], None]

SORT_DIRECTIONS = ("asc", "desc")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class StateStore:
    """Validated mutations and the commit point for engine results.

    Usage:
        store = StateStore(config, bus)
        selector.attach(store)          # binds the reconciler
        store.set_sort("name")          # -> stateChange, reconciliation
    """

    def __init__(
        self,
        config: GridConfig,
        bus: EventBus,
        selection: Optional[SelectionTracker] = None,
    ) -> None:
        """Initialize the store with default view state.

        Args:
            config: Validated table configuration
            bus: The table's event bus
            selection: Selection tracker; one is created from config if omitted
        """
        self.config = config
        self.bus = bus
        self.selection = selection if selection is not None else SelectionTracker(config.selection)
        self._state = ViewState(page_size=config.page_size)
        self._reconciler: Optional[Reconciler] = None
        self.last_rejection: Optional[ViewValidationError] = None
        # Rows selectable right now, keyed by RowId (filtered rows locally, page rows remotely)
        self._universe: Dict[RowId, Any] = {}

    # --- Read access ---

    @property
    def state(self) -> ViewState:
        """A copy of the current state; mutate only through store operations."""
        return self._state.copy()

    @property
    def page(self) -> int:
        return self._state.page

    @property
    def page_size(self) -> int:
        return self._state.page_size

    @property
    def search_term(self) -> str:
        return self._state.search_term

    @property
    def sort_column(self) -> Optional[str]:
        return self._state.sort_column

    @property
    def sort_direction(self) -> str:
        return self._state.sort_direction

    @property
    def rows(self) -> List[Any]:
        return list(self._state.rows)

    @property
    def total_count(self) -> int:
        return self._state.total_count

    @property
    def total_pages(self) -> int:
        return self._state.total_pages

    def bind_reconciler(self, reconciler: Optional[Reconciler]) -> None:
        self._reconciler = reconciler

    # --- View mutations ---

    def set_page(self, page: Any) -> bool:
        """Move to ``page``; rejected when outside [1, total_pages]."""
        if not _is_int(page):
            return self._reject(f"Page must be an integer, got {page!r}", "page")
        if page < 1 or page > self._state.total_pages:
            return self._reject(
                f"Page {page} is out of range (1-{self._state.total_pages})", "page"
            )

        old = self._state.page
        self._state.page = page
        self._changed("page", old, page)
        self._reconcile(ReconcileReason.PAGE)
        return True

    def set_page_size(self, size: Any) -> bool:
        """Change rows per page and return to page 1."""
        if not _is_int(size) or size < 1:
            return self._reject(f"Page size must be a positive integer, got {size!r}", "pageSize")

        old = self._state.page_size
        self._state.page_size = size
        self._state.page = 1
        self._changed("pageSize", old, size)
        self._reconcile(ReconcileReason.PAGE_SIZE)
        return True

    def set_sort(self, column: Any, direction: Optional[str] = None) -> bool:
        """Sort by ``column``.

        Without a direction, re-sorting the current column flips the direction
        and a new column starts ascending. An explicit direction is applied as is.
        """
        if not isinstance(column, str) or not column:
            return self._reject("Sort column must be a non-empty string", "sort")
        col = self.config.column(column)
        if col is None:
            return self._reject(f"Column '{column}' does not exist", "sort")
        if not col.sortable:
            return self._reject(f"Column '{column}' is not sortable", "sort")
        if direction is not None and direction not in SORT_DIRECTIONS:
            self.warn('Sort direction must be "asc" or "desc"', "sort")
            direction = None

        old = {"column": self._state.sort_column, "direction": self._state.sort_direction}
        if direction is None and self._state.sort_column == column:
            new_direction = "desc" if self._state.sort_direction == "asc" else "asc"
        else:
            new_direction = direction or "asc"

        self._state.sort_column = column
        self._state.sort_direction = new_direction
        self._state.page = 1
        self._changed("sort", old, {"column": column, "direction": new_direction})
        self._reconcile(ReconcileReason.SORT)
        return True

    def set_search(self, term: Any) -> bool:
        """Set the search term and return to page 1."""
        term = "" if term is None else str(term)

        old = self._state.search_term
        self._state.search_term = term
        self._state.page = 1
        self._changed("searchTerm", old, term)
        self._reconcile(ReconcileReason.SEARCH)
        return True

    def refresh(self) -> None:
        """Reconcile again with unchanged view state."""
        self._reconcile(ReconcileReason.REFRESH)

    def data_changed(self) -> None:
        """The local source collection changed; re-run the local pipeline."""
        self._reconcile(ReconcileReason.DATA)

    # --- Selection ---

    def select(self, row_id: RowId, selected: bool = True) -> bool:
        old = self.selection.ordered_ids()
        self.selection.select(row_id, bool(selected))
        self.notify_selection_changed(old)
        return True

    def select_all(self, selected: bool = True) -> bool:
        """Select every row in the current collection, or clear the selection."""
        if not selected:
            return self.clear_selection()
        if not self.selection.multi_select:
            return self._reject("select_all requires multi-select mode", "selection")

        old = self.selection.ordered_ids()
        self.selection.select_many(self._universe.keys())
        self.notify_selection_changed(old)
        return True

    def clear_selection(self) -> bool:
        old = self.selection.ordered_ids()
        self.selection.clear()
        self.notify_selection_changed(old)
        return True

    def get_selected(self) -> List[Any]:
        """Selected rows that are present in the current collection."""
        return self.selection.selected_rows(self._universe)

    # --- Engine commit points ---

    def clamp_page(self, total_count: int) -> int:
        """Pull ``page`` back into range for ``total_count`` and return it."""
        last = ViewState(page_size=self._state.page_size, total_count=total_count).total_pages
        if self._state.page > last:
            old = self._state.page
            self._state.page = last
            self._changed("page", old, last)
        return self._state.page

    def commit_rows(
        self,
        rows: Sequence[Any],
        total_count: int,
        row_ids: Sequence[RowId],
        universe: Optional[Iterable[tuple]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Commit an engine result and emit ``dataLoaded``.

        Args:
            rows: Rows now visible
            total_count: Matching rows across all pages
            row_ids: Selection ids for ``rows``, same order
            universe: (id, row) pairs selectable as a whole; defaults to the visible rows
            params: Request parameters the rows were fetched with; the event
                describes these rather than the live state, which may already
                hold a newer search term waiting on the debounce
        """
        self._state.rows = list(rows)
        self._state.row_ids = list(row_ids)
        self._state.total_count = max(0, int(total_count))
        self._universe = dict(universe if universe is not None else zip(row_ids, rows))

        if not self.config.selection.retain_offpage:
            old = self.selection.ordered_ids()
            if self.selection.prune(self._universe.keys()):
                self._state.selection = self.selection.ids
                self._changed("selection", old, self.selection.ordered_ids())

        s = self._state
        logger.debug(
            f"Committed {len(s.rows)} row(s), total={s.total_count}, page={s.page}/{s.total_pages}"
        )
        if params is None:
            event = events.create_data_loaded_event(
                s.rows, s.total_count, s.page, s.search_term, s.sort_column, s.sort_direction
            )
        else:
            event = events.create_data_loaded_event(
                s.rows, s.total_count, params["page"], params["search"], params["sortBy"], params["sortDir"]
            )
        self.bus.publish(events.TOPIC_DATA_LOADED, event)

    def reset(self) -> None:
        """Drop rows and selection (teardown)."""
        self.selection.clear()
        self._universe = {}
        self._state = ViewState(page_size=self.config.page_size)
        self._reconciler = None

    # --- Internals ---

    def _reconcile(self, reason: ReconcileReason) -> None:
        if self._reconciler is None:
            logger.debug(f"No reconciler bound; skipping {reason.value} reconciliation")
            return
        self._reconciler(reason)

    def _changed(self, field: str, old: Any, new: Any) -> None:
        self.bus.publish(events.TOPIC_STATE_CHANGE, events.create_state_change_event(field, old, new))

    def notify_selection_changed(self, old: List[RowId]) -> None:
        self._state.selection = self.selection.ids
        self._changed("selection", old, self.selection.ordered_ids())

    def warn(self, message: str, field: Optional[str]) -> None:
        logger.warning(message)
        self.bus.publish(events.TOPIC_WARNING, events.create_warning_event(message, field))

    def _reject(self, message: str, field: str) -> bool:
        self.last_rejection = ViewValidationError(message, field)
        self.warn(message, field)
        return False
