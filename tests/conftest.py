"""Shared fixtures and fakes for GridSync tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import pytest

from gridsync.shared.core.errors import TransportError
from gridsync.shared.infrastructure.transport.base import RequestOptions

PEOPLE_COLUMNS = [
    {"key": "id", "searchable": False},
    {"key": "name"},
    {"key": "city"},
    {"key": "profile.team"},
    {"key": "notes", "sortable": False},
]


def make_people(count: int = 25) -> List[Dict[str, Any]]:
    teams = ["red", "blue", "green"]
    return [
        {
            "id": i + 1,
            "name": f"Person {i:02d}",
            "city": "Oslo" if i % 2 else "Bergen",
            "profile": {"team": teams[i % 3]},
            "notes": "vip" if i == 7 else None,
        }
        for i in range(count)
    ]


def page_body(rows: List[Any], total: int, draw: Optional[int] = None, error: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"data": rows, "total": total, "error": error}
    if draw is not None:
        body["draw"] = draw
    return body


class FakeServer:
    """Serves pages of a fixed dataset the way a well-behaved endpoint would."""

    def __init__(self, rows: List[Any], echo_token: bool = True) -> None:
        self.rows = rows
        self.echo_token = echo_token

    def __call__(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = self.rows
        term = (payload.get("search") or "").lower()
        if term:
            rows = [r for r in rows if term in str(r.get("name", "")).lower()]
        if payload.get("sortBy"):
            rows = sorted(rows, key=lambda r: r[payload["sortBy"]], reverse=payload.get("sortDir") == "desc")
        start = (payload["page"] - 1) * payload["pageSize"]
        return page_body(
            rows[start:start + payload["pageSize"]],
            len(rows),
            draw=payload.get("token") if self.echo_token else None,
        )


class ScriptedTransport:
    """Transport fake.

    ``handler(payload)`` returns a body or an exception instance (raised).
    With ``manual=True`` each call parks on a future that the test resolves.
    """

    def __init__(self, handler: Optional[Callable[[Any], Any]] = None, manual: bool = False) -> None:
        self.handler = handler
        self.manual = manual
        self.calls: List[RequestOptions] = []
        self.futures: List[asyncio.Future] = []
        self.closed = False

    @property
    def payloads(self) -> List[Any]:
        return [options.payload for options in self.calls]

    async def send(self, url: str, options: RequestOptions) -> Any:
        self.calls.append(options)
        if self.manual:
            future = asyncio.get_running_loop().create_future()
            self.futures.append(future)
            return await future
        result = self.handler(options.payload)
        if isinstance(result, BaseException):
            raise result
        return result

    def resolve(self, index: int, body: Any) -> bool:
        future = self.futures[index]
        if future.done():
            return False
        future.set_result(body)
        return True

    async def aclose(self) -> None:
        self.closed = True


class SlowTransport(ScriptedTransport):
    """Sleeps before answering; used for timeout tests."""

    def __init__(self, delay: float, handler: Optional[Callable[[Any], Any]] = None) -> None:
        super().__init__(handler=handler)
        self.delay = delay

    async def send(self, url: str, options: RequestOptions) -> Any:
        self.calls.append(options)
        await asyncio.sleep(self.delay)
        return self.handler(options.payload)


def always_fail(_payload: Any) -> TransportError:
    return TransportError("connection refused")


class EventRecorder:
    """Subscribes to topics and records payloads in arrival order."""

    def __init__(self, table, *topics: str) -> None:
        self.events: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.order: List[str] = []
        for topic in topics:
            table.on(topic, self._make_handler(topic))

    def _make_handler(self, topic: str):
        def handler(payload):
            self.events[topic].append(payload)
            self.order.append(topic)
        handler.__name__ = f"record_{topic}"
        return handler

    def __getitem__(self, topic: str) -> List[Dict[str, Any]]:
        return self.events[topic]


@pytest.fixture
def people() -> List[Dict[str, Any]]:
    return make_people(25)


@pytest.fixture
def local_config(people) -> Dict[str, Any]:
    return {
        "columns": PEOPLE_COLUMNS,
        "data": people,
        "page_size": 10,
        "selection": {"multi_select": True},
    }


@pytest.fixture
def remote_config() -> Dict[str, Any]:
    return {
        "mode": "remote",
        "columns": PEOPLE_COLUMNS,
        "page_size": 10,
        "ajax": {
            "url": "https://example.test/api/people",
            "debounce_ms": 30,
            "retry_base_delay_ms": 1,
            "timeout_ms": 1000,
        },
    }
