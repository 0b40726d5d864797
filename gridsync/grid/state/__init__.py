"""View state management.

- ViewState: canonical record of the current view
- StateStore: validated mutations and the engine commit point
"""

from .view_state import ReconcileReason, RowId, ViewState
from .store import StateStore

__all__ = ["ReconcileReason", "RowId", "ViewState", "StateStore"]
