"""DataTable - public facade over the view synchronization engine.

Wires the event bus, state store, selection tracker and the engine chosen by
``config.mode`` into one independently constructible and destructible unit.
Instances share nothing.

Usage:
    table = DataTable({"columns": [{"key": "name"}], "data": rows, "page_size": 25})
    table.on("dataLoaded", render)
    table.set_search("smith")

    async with DataTable(mode="remote", columns=cols, ajax={"url": URL}) as remote:
        remote.set_page(2)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from gridsync.shared.core.configuration import GridConfig, build_grid_config
from gridsync.shared.core.event_bus import EventBus, EventHandler
from gridsync.shared.infrastructure.transport.base import Transport
from gridsync.shared.infrastructure.transport.http_transport import HttpxTransport

from .engines.local_engine import LocalEngine
from .engines.mode_selector import ModeSelector
from .engines.remote_engine import RemoteSyncEngine
from .export import ExportOptions, ViewSnapshot
from .selection import SelectionTracker
from .state.store import StateStore
from .state.view_state import RowId, ViewState

logger = logging.getLogger(__name__)


class DataTable:
    """A paginated, sortable, searchable view over local rows or a remote endpoint."""

    def __init__(
        self,
        config: Union[GridConfig, Dict[str, Any], None] = None,
        *,
        transport: Optional[Transport] = None,
        bus: Optional[EventBus] = None,
        **options: Any,
    ) -> None:
        """Build a table.

        Args:
            config: ``GridConfig`` or mapping; keyword options are merged on top
            transport: Remote transport; an ``HttpxTransport`` is created if omitted
            bus: Event bus; each table gets its own by default

        Raises:
            ConfigurationError: If the configuration is unusable (e.g. remote without a URL)
        """
        self.config = build_grid_config(config, **options)
        self.bus = bus or EventBus()
        self.selection = SelectionTracker(self.config.selection)
        self.store = StateStore(self.config, self.bus, self.selection)

        self.local: Optional[LocalEngine] = None
        self.remote: Optional[RemoteSyncEngine] = None
        self._owns_transport = False
        self.transport: Optional[Transport] = None

        if self.config.is_remote:
            if transport is None:
                transport = HttpxTransport(timeout=self.config.ajax.timeout_ms / 1000)
                self._owns_transport = True
            self.transport = transport
            self.remote = RemoteSyncEngine(self.config, self.store, self.bus, transport)
        else:
            self.local = LocalEngine(self.config)

        self.selector = ModeSelector(self.config, local=self.local, remote=self.remote)
        self.selector.attach(self.store)

        self._started = False
        self._destroyed = False

        if self.local is not None:
            self.local.reconcile(self.store)
            self._started = True

        logger.debug(f"DataTable created in {self.config.mode} mode with {len(self.config.columns)} column(s)")

    # --- Lifecycle ---

    async def start(self) -> "DataTable":
        """Load the first page. Remote tables wait for the initial request to settle."""
        if self._started or self._destroyed:
            return self
        self._started = True
        self.store.refresh()
        await self.remote.wait_idle()
        return self

    async def refresh(self) -> "DataTable":
        """Reload the current page (remote) or re-run the local pipeline."""
        if not self._check_alive("refresh"):
            return self
        self.store.refresh()
        if self.remote is not None:
            await self.remote.wait_idle()
        return self

    async def wait_idle(self) -> None:
        """Wait for debounced searches, in-flight requests and async handlers."""
        if self.remote is not None:
            await self.remote.wait_idle()
        await self.bus.wait_until_idle()

    def destroy(self) -> None:
        """Cancel in-flight work, drop subscriptions and state."""
        if self._destroyed:
            return
        if self.remote is not None:
            self.remote.close()
        self.selector.detach()
        self.bus.clear()
        self.store.reset()
        self._destroyed = True
        logger.debug("DataTable destroyed")

    async def aclose(self) -> None:
        if self._destroyed:
            return
        if self.remote is not None:
            await self.remote.aclose()
        if self._owns_transport and self.transport is not None:
            await self.transport.aclose()
        self.destroy()

    async def __aenter__(self) -> "DataTable":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # --- Events ---

    def on(self, topic: str, handler: EventHandler) -> None:
        self.bus.subscribe(topic, handler)

    def off(self, topic: str, handler: EventHandler) -> None:
        self.bus.unsubscribe(topic, handler)

    # --- View state ---

    @property
    def state(self) -> ViewState:
        return self.store.state

    @property
    def rows(self) -> List[Any]:
        return self.store.rows

    @property
    def page(self) -> int:
        return self.store.page

    @property
    def total_count(self) -> int:
        return self.store.total_count

    @property
    def total_pages(self) -> int:
        return self.store.total_pages

    @property
    def is_loading(self) -> bool:
        return self.remote is not None and self.remote.is_loading

    def set_page(self, page: int) -> bool:
        return self._check_alive("set_page") and self.store.set_page(page)

    def set_page_size(self, size: int) -> bool:
        return self._check_alive("set_page_size") and self.store.set_page_size(size)

    def set_sort(self, column: str, direction: Optional[str] = None) -> bool:
        return self._check_alive("set_sort") and self.store.set_sort(column, direction)

    def set_search(self, term: Any) -> bool:
        return self._check_alive("set_search") and self.store.set_search(term)

    # --- Selection ---

    def select(self, row_id: RowId, selected: bool = True) -> bool:
        return self._check_alive("select") and self.store.select(row_id, selected)

    def select_all(self, selected: bool = True) -> bool:
        return self._check_alive("select_all") and self.store.select_all(selected)

    def clear_selection(self) -> bool:
        return self._check_alive("clear_selection") and self.store.clear_selection()

    def get_selected(self) -> List[Any]:
        return self.store.get_selected()

    # --- Local data management ---

    def set_data(self, rows: Sequence[Any]) -> bool:
        """Replace the local collection; selection is cleared and page reset."""
        if not isinstance(rows, (list, tuple)):
            raise TypeError("Data must be a list")
        if not self._check_local("set_data"):
            return False
        self.local.set_data(rows, self.store)
        return True

    def add_row(self, row: Dict[str, Any]) -> bool:
        if not isinstance(row, dict):
            raise TypeError("Row must be a dict")
        if not self._check_local("add_row"):
            return False
        self.local.add_row(row, self.store)
        return True

    def remove_row(self, index: int) -> Optional[Any]:
        """Remove a source row by index; returns the removed row."""
        if not self._check_local("remove_row"):
            return None
        if not self._valid_index(index):
            self.store.warn(f"Invalid row index: {index}", "data")
            return None
        return self.local.remove_row(index, self.store)

    def update_row(self, index: int, changes: Dict[str, Any]) -> Optional[Any]:
        """Merge ``changes`` into a source row; returns the updated row."""
        if not isinstance(changes, dict):
            raise TypeError("New data must be a dict")
        if not self._check_local("update_row"):
            return None
        if not self._valid_index(index):
            self.store.warn(f"Invalid row index: {index}", "data")
            return None
        return self.local.update_row(index, changes, self.store)

    # --- Export ---

    def snapshot(self) -> ViewSnapshot:
        """Immutable copy of the current view for exporters."""
        s = self.store.state
        all_rows = self.local.filtered_rows() if self.local is not None else s.rows
        return ViewSnapshot(
            page=s.page,
            page_size=s.page_size,
            total_count=s.total_count,
            sort_column=s.sort_column,
            sort_direction=s.sort_direction,
            search_term=s.search_term,
            rows=tuple(s.rows),
            selection=tuple(self.selection.ordered_ids()),
            selected_rows=tuple(self.store.get_selected()),
            all_rows=tuple(all_rows),
            column_keys=tuple(col.key for col in self.config.columns),
        )

    def export_rows(self, selected_only: bool = False, visible_only: bool = False) -> List[Any]:
        return self.snapshot().export_rows(
            ExportOptions(selected_only=selected_only, visible_only=visible_only)
        )

    # --- Helpers ---

    def _check_alive(self, operation: str) -> bool:
        if self._destroyed:
            logger.warning(f"{operation}() called on a destroyed table")
            return False
        return True

    def _check_local(self, operation: str) -> bool:
        if not self._check_alive(operation):
            return False
        if self.local is None:
            self.store.warn(
                f"{operation}() not supported in remote mode. Use the server API to change data.",
                "data",
            )
            return False
        return True

    def _valid_index(self, index: Any) -> bool:
        return (
            isinstance(index, int)
            and not isinstance(index, bool)
            and 0 <= index < len(self.local.source)
        )


__all__ = ["DataTable"]
