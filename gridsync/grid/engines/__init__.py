from .local_engine import LocalEngine, filter_rows, paginate, sort_rows
from .mode_selector import ModeSelector
from .remote_engine import RemoteSyncEngine, RequestRecord, RequestStatus

__all__ = [
    "LocalEngine",
    "ModeSelector",
    "RemoteSyncEngine",
    "RequestRecord",
    "RequestStatus",
    "filter_rows",
    "paginate",
    "sort_rows",
]
