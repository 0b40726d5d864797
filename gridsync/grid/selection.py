"""Selection tracking, independent of pagination."""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping

from gridsync.shared.core.configuration import SelectionConfig

from .state.view_state import RowId

logger = logging.getLogger(__name__)


class SelectionTracker:
    """Set of selected row ids.

    Ids are identity based: in local mode the row's index in the source
    collection (or ``id_field``), so a selection survives re-sorting and
    re-filtering. Insertion order is kept so reports are deterministic.
    """

    def __init__(self, config: SelectionConfig | None = None) -> None:
        self.config = config or SelectionConfig()
        self._ids: Dict[RowId, None] = {}

    @property
    def multi_select(self) -> bool:
        return self.config.multi_select

    @property
    def ids(self) -> FrozenSet[RowId]:
        return frozenset(self._ids)

    def ordered_ids(self) -> List[RowId]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, row_id: object) -> bool:
        return row_id in self._ids

    def select(self, row_id: RowId, selected: bool = True) -> bool:
        """Add or remove one id. Returns True when the set changed.

        In single-select mode selecting an id replaces any prior selection.
        """
        before = list(self._ids)
        if selected:
            if not self.multi_select:
                self._ids.clear()
            self._ids[row_id] = None
        else:
            self._ids.pop(row_id, None)
        return list(self._ids) != before

    def select_many(self, row_ids: Iterable[RowId]) -> bool:
        if not self.multi_select:
            raise ValueError("select_many requires multi-select mode")
        before = len(self._ids)
        for row_id in row_ids:
            self._ids[row_id] = None
        return len(self._ids) != before

    def clear(self) -> bool:
        changed = bool(self._ids)
        self._ids.clear()
        return changed

    def prune(self, keep: Iterable[RowId]) -> bool:
        """Drop ids that are not in ``keep``."""
        keep_set = set(keep)
        dropped = [row_id for row_id in self._ids if row_id not in keep_set]
        for row_id in dropped:
            del self._ids[row_id]
        if dropped:
            logger.debug(f"Pruned {len(dropped)} off-page selection id(s)")
        return bool(dropped)

    def shift_after_removal(self, removed_index: int) -> None:
        """Remap positional ids after a source row was removed."""
        remapped: Dict[RowId, None] = {}
        for row_id in self._ids:
            if not isinstance(row_id, int) or isinstance(row_id, bool):
                remapped[row_id] = None
            elif row_id > removed_index:
                remapped[row_id - 1] = None
            elif row_id < removed_index:
                remapped[row_id] = None
        self._ids = remapped

    def selected_rows(self, universe: Mapping[RowId, Any]) -> List[Any]:
        """Rows in ``universe`` whose ids are tracked, in universe order."""
        return [row for row_id, row in universe.items() if row_id in self._ids]
