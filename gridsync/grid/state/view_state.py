"""Canonical view state for one table instance."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, FrozenSet, Hashable, List, Optional

RowId = Hashable


class ReconcileReason(str, Enum):
    """Why a reconciliation with the data source was requested."""
    PAGE = "page"
    PAGE_SIZE = "pageSize"
    SORT = "sort"
    SEARCH = "search"
    REFRESH = "refresh"
    DATA = "data"


@dataclass
class ViewState:
    """Everything needed to reproduce the current table view.

    Owned and mutated exclusively by ``StateStore``.
    """
    page: int = 1
    page_size: int = 10
    sort_column: Optional[str] = None
    sort_direction: str = "asc"
    search_term: str = ""
    selection: FrozenSet[RowId] = frozenset()
    rows: List[Any] = field(default_factory=list)
    row_ids: List[RowId] = field(default_factory=list)
    total_count: int = 0

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_count / self.page_size))

    def copy(self) -> "ViewState":
        return replace(self, rows=list(self.rows), row_ids=list(self.row_ids))
