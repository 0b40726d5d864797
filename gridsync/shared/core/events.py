"""Canonical event definitions for GridSync."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .event_bus import EventPayload

# Remote lifecycle
TOPIC_REQUEST_START = "requestStart"
TOPIC_REQUEST_END = "requestEnd"
TOPIC_DATA_LOADED = "dataLoaded"
TOPIC_ERROR = "error"

# View state
TOPIC_STATE_CHANGE = "stateChange"
TOPIC_WARNING = "warning"

# Local data management
TOPIC_DATA_CHANGE = "dataChange"
TOPIC_ROW_ADD = "rowAdd"
TOPIC_ROW_REMOVE = "rowRemove"
TOPIC_ROW_UPDATE = "rowUpdate"


def create_request_event(
    page: int,
    search: str,
    sort_by: Optional[str],
    sort_dir: str,
) -> EventPayload:
    """Payload shared by requestStart and requestEnd."""
    return {
        "page": page,
        "search": search,
        "sortBy": sort_by,
        "sortDir": sort_dir,
    }


def create_data_loaded_event(
    rows: Sequence[Any],
    total: int,
    page: int,
    search: str,
    sort_by: Optional[str],
    sort_dir: str,
) -> EventPayload:
    """Create a dataLoaded event."""
    return {
        "rows": list(rows),
        "total": total,
        "page": page,
        "search": search,
        "sortBy": sort_by,
        "sortDir": sort_dir,
    }


def create_error_event(message: str, page: int, search: str) -> EventPayload:
    """Create a terminal error event."""
    return {
        "message": message,
        "page": page,
        "search": search,
    }


def create_state_change_event(field: str, old_value: Any, new_value: Any) -> EventPayload:
    """Create a stateChange event.

    Args:
        field: Name of the ViewState field that changed
        old_value: Value before the mutation
        new_value: Value after the mutation
    """
    return {
        "field": field,
        "oldValue": old_value,
        "newValue": new_value,
    }


def create_warning_event(message: str, field: Optional[str] = None) -> EventPayload:
    return {"message": message, "field": field}


def create_data_change_event(data: List[Any]) -> EventPayload:
    return {"data": list(data)}


def create_row_event(row: Any, index: Optional[int] = None) -> EventPayload:
    """Create a rowAdd/rowRemove/rowUpdate event."""
    event: EventPayload = {"row": row}
    if index is not None:
        event["index"] = index
    return event
