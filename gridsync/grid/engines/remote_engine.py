"""Remote Sync Engine.

Turns view mutations into a sequenced request/response protocol against a
remote source:

- every dispatch issues a new monotonically increasing token;
- a newer dispatch cancels all older in-flight tokens (the task is cancelled
  and, regardless of whether the transport honours it, the token can no longer
  commit);
- search input is debounced, page/page-size/sort dispatch immediately;
- failures retry with linear backoff (``attempt * retry_base_delay_ms``) until
  ``max_retries`` is exhausted, then surface one ``error`` event while the
  previously committed rows stay in place;
- responses echoing an older token are dropped silently.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from gridsync.shared.core import events
from gridsync.shared.core.configuration import GridConfig
from gridsync.shared.core.errors import MalformedResponseError, TransportError
from gridsync.shared.core.event_bus import EventBus
from gridsync.shared.core.paths import ABSENT, resolve_or_none, resolve_path
from gridsync.shared.infrastructure.transport.base import RequestOptions, Transport

from ..state.store import StateStore
from ..state.view_state import ReconcileReason, RowId

logger = logging.getLogger(__name__)


class RequestStatus(str, Enum):
    """Lifecycle of one request token."""
    PENDING = "pending"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    REJECTED_STALE = "rejected_stale"
    CANCELLED = "cancelled"
    FAILED = "failed"
    FAILED_TERMINAL = "failed_terminal"


IN_FLIGHT = (RequestStatus.PENDING, RequestStatus.RETRYING, RequestStatus.FAILED)


@dataclass
class RequestRecord:
    """Entry in the per-token request table."""
    token: int
    params: Dict[str, Any]
    payload: Any
    status: RequestStatus = RequestStatus.PENDING
    attempts: int = 0
    error: Optional[str] = None
    task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self.status in IN_FLIGHT


def _coerce_token(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


class RemoteSyncEngine:
    """Asynchronous engine for ``mode="remote"`` tables.

    Requires a running asyncio loop for dispatching; all state changes
    happen on that loop, so no locking is needed.
    """

    MAX_TRACKED_REQUESTS = 64

    def __init__(
        self,
        config: GridConfig,
        store: StateStore,
        bus: EventBus,
        transport: Transport,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Validated remote-mode configuration
            store: State store that owns the view state
            bus: Event bus for lifecycle events
            transport: Transport used to reach ``config.ajax.url``
        """
        self.config = config
        self.store = store
        self.bus = bus
        self.transport = transport

        self._latest_token = 0
        self._requests: Dict[int, RequestRecord] = {}
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._closed = False

    # --- Introspection ---

    @property
    def latest_token(self) -> int:
        return self._latest_token

    @property
    def is_loading(self) -> bool:
        return any(rec.in_flight for rec in self._requests.values())

    @property
    def debounce_pending(self) -> bool:
        return self._debounce_handle is not None

    def status(self, token: int) -> Optional[RequestStatus]:
        record = self._requests.get(token)
        return record.status if record else None

    def record(self, token: int) -> Optional[RequestRecord]:
        return self._requests.get(token)

    # --- Entry points ---

    def request(self, reason: ReconcileReason) -> None:
        """Reconcile with the remote source for a state mutation."""
        if self._closed:
            logger.debug(f"Engine closed; ignoring {reason.value} reconciliation")
            return
        if reason == ReconcileReason.SEARCH and self.config.ajax.debounce_ms > 0:
            self._schedule_debounced()
            return
        # An immediate dispatch already carries the latest search term
        self._cancel_debounce()
        self.dispatch()

    def dispatch(self) -> Optional[int]:
        """Build, vet and send a request for the current view state.

        Returns:
            The issued token, or None if ``pre_send`` vetoed the request
        """
        if self._closed:
            return None

        hooks = self.config.hooks
        params = self._build_params(self._latest_token + 1)
        payload = hooks.map_params(params)
        if not hooks.allows(payload, params):
            logger.debug("Request vetoed by pre_send hook")
            return None

        loop = asyncio.get_running_loop()
        self._latest_token += 1
        token = self._latest_token
        self._supersede(token)

        record = RequestRecord(token=token, params=params, payload=payload)
        self._requests[token] = record
        self._prune_table()

        self.bus.publish(events.TOPIC_REQUEST_START, self._request_event(params))
        record.task = loop.create_task(self._run(record), name=f"gridsync-request-{token}")
        logger.debug(f"Dispatched request {token}: {params}")
        return token

    async def wait_idle(self) -> None:
        """Wait until the pending debounce and all in-flight requests settle."""
        while True:
            if self._debounce_handle is not None:
                await asyncio.sleep(self.config.ajax.debounce_ms / 1000)
                continue
            tasks = [
                rec.task for rec in self._requests.values()
                if rec.task is not None and not rec.task.done()
            ]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        """Cancel the debounce timer and every in-flight request."""
        self._closed = True
        self._cancel_debounce()
        for record in self._requests.values():
            if record.in_flight:
                record.status = RequestStatus.CANCELLED
            if record.task is not None and not record.task.done():
                record.task.cancel()

    async def aclose(self) -> None:
        self.close()
        tasks = [rec.task for rec in self._requests.values() if rec.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # --- Debounce ---

    def _schedule_debounced(self) -> None:
        loop = asyncio.get_running_loop()
        self._cancel_debounce()
        delay = self.config.ajax.debounce_ms / 1000
        self._debounce_handle = loop.call_later(delay, self._on_debounce_elapsed)

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _on_debounce_elapsed(self) -> None:
        self._debounce_handle = None
        try:
            self.dispatch()
        except Exception:
            logger.exception("Debounced dispatch failed")

    # --- Request cycle ---

    def _build_params(self, token: int) -> Dict[str, Any]:
        return {
            "page": self.store.page,
            "pageSize": self.store.page_size,
            "search": self.store.search_term,
            "sortBy": self.store.sort_column,
            "sortDir": self.store.sort_direction,
            "token": token,
        }

    def _request_event(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return events.create_request_event(
            params["page"], params["search"], params["sortBy"], params["sortDir"]
        )

    def _supersede(self, token: int) -> None:
        for record in self._requests.values():
            if record.token < token and record.in_flight:
                record.status = RequestStatus.CANCELLED
                if record.task is not None and not record.task.done():
                    record.task.cancel()
                logger.debug(f"Request {record.token} superseded by {token}")

    def _prune_table(self) -> None:
        overflow = len(self._requests) - self.MAX_TRACKED_REQUESTS
        if overflow <= 0:
            return
        for token in sorted(self._requests)[:overflow]:
            if not self._requests[token].in_flight:
                del self._requests[token]

    def _is_current(self, record: RequestRecord) -> bool:
        return (
            not self._closed
            and record.token == self._latest_token
            and record.status != RequestStatus.CANCELLED
        )

    def _options(self) -> RequestOptions:
        ajax = self.config.ajax
        return RequestOptions(
            method=ajax.method,
            headers=dict(ajax.headers),
            timeout=ajax.timeout_ms / 1000,
        )

    async def _run(self, record: RequestRecord) -> None:
        ajax = self.config.ajax
        url = ajax.url
        base_options = self._options()
        options = RequestOptions(
            method=base_options.method,
            headers=base_options.headers,
            payload=record.payload,
            timeout=base_options.timeout,
        )

        try:
            while True:
                record.attempts += 1
                record.status = RequestStatus.PENDING
                try:
                    body = await asyncio.wait_for(
                        self.transport.send(url, options), ajax.timeout_ms / 1000
                    )
                    result = self._reconcile(record, body)
                except asyncio.TimeoutError:
                    failure: TransportError = TransportError(
                        f"Request timed out after {ajax.timeout_ms} ms"
                    )
                except TransportError as e:
                    failure = e
                except Exception as e:
                    logger.warning(f"Transport raised {type(e).__name__} for request {record.token}")
                    failure = TransportError(str(e) or type(e).__name__)
                else:
                    if result is not None:
                        self._accept(record, *result)
                    return

                if not self._is_current(record):
                    record.status = RequestStatus.CANCELLED
                    return

                record.status = RequestStatus.FAILED
                record.error = str(failure)
                logger.warning(f"Request {record.token} attempt {record.attempts} failed: {failure}")

                retries_used = record.attempts - 1
                if retries_used >= ajax.max_retries:
                    self._fail_terminal(record, failure)
                    return

                record.status = RequestStatus.RETRYING
                delay = record.attempts * ajax.retry_base_delay_ms / 1000
                logger.info(
                    f"Retrying request {record.token} ({record.attempts}/{ajax.max_retries}) in {delay:.3f}s"
                )
                await asyncio.sleep(delay)
                if not self._is_current(record):
                    record.status = RequestStatus.CANCELLED
                    return
        except asyncio.CancelledError:
            record.status = RequestStatus.CANCELLED
            logger.debug(f"Request {record.token} was cancelled")
            raise

    def _reconcile(self, record: RequestRecord, body: Any) -> Optional[Tuple[List[Any], int]]:
        """Validate a response body.

        Returns:
            (rows, total) to commit, or None when the response must be dropped

        Raises:
            TransportError: The body reports an error
            MalformedResponseError: Rows are missing or not a sequence
        """
        if not self._is_current(record):
            record.status = RequestStatus.CANCELLED
            return None

        paths = self.config.response
        if paths.token_path:
            echoed = resolve_or_none(body, paths.token_path)
            if echoed is not None and _coerce_token(echoed) != self._latest_token:
                record.status = RequestStatus.REJECTED_STALE
                logger.warning(
                    f"Response token {echoed!r} does not match latest {self._latest_token}; ignoring stale response"
                )
                return None

        error = resolve_or_none(body, paths.error_path)
        if error not in (None, "", False):
            raise TransportError(str(error))

        rows = resolve_or_none(body, paths.rows_path)
        if not isinstance(rows, (list, tuple)):
            raise MalformedResponseError("Server response data is not an array")

        total = resolve_or_none(body, paths.total_path)
        if not isinstance(total, int) or isinstance(total, bool) or total < 0:
            total = len(rows)
        return list(rows), total

    def _row_ids(self, rows: Sequence[Any], params: Dict[str, Any]) -> List[RowId]:
        """Selection ids for a fetched page.

        Without ``id_field`` (or when a row lacks it) the id is the row's
        absolute offset in the server's result set, not its slot on the page.
        """
        offset = (params["page"] - 1) * params["pageSize"]
        id_field = self.config.selection.id_field
        ids: List[RowId] = []
        for position, row in enumerate(rows):
            value = resolve_path(row, id_field) if id_field else ABSENT
            ids.append(offset + position if value is ABSENT else value)
        return ids

    def _accept(self, record: RequestRecord, rows: List[Any], total: int) -> None:
        record.status = RequestStatus.ACCEPTED
        record.error = None
        params = record.params

        # The server may report fewer pages than the one we asked for
        last = self.store.clamp_page(total)
        if params["page"] > last:
            logger.info(f"Page {params['page']} no longer exists; reloading page {last}")
            self._settle(record)
            self.store.refresh()
            return

        logger.info(
            f"Server data loaded: token={record.token}, rows={len(rows)}, total={total}, "
            f"page={params['page']}, page_size={params['pageSize']}"
        )
        self.store.commit_rows(rows, total, self._row_ids(rows, params), params=params)
        self._settle(record)

    def _fail_terminal(self, record: RequestRecord, error: TransportError) -> None:
        record.status = RequestStatus.FAILED_TERMINAL
        record.error = str(error)
        params = record.params
        logger.error(f"Failed to load server data for request {record.token}: {error}")

        self._call_hook("on_error", self.config.hooks.fail, error, params["page"], params["search"])
        self.bus.publish(
            events.TOPIC_ERROR,
            events.create_error_event(str(error), params["page"], params["search"]),
        )
        self._settle(record)

    def _settle(self, record: RequestRecord) -> None:
        self._call_hook("on_complete", self.config.hooks.complete)
        self.bus.publish(events.TOPIC_REQUEST_END, self._request_event(record.params))

    def _call_hook(self, name: str, hook: Callable[..., Any], *args: Any) -> None:
        try:
            hook(*args)
        except Exception:
            logger.exception(f"Hook '{name}' raised")
