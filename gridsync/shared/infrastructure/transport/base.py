"""Transport contract used by the remote sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class RequestOptions:
    """Everything a transport needs to issue one request."""
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    payload: Any = None
    timeout: Optional[float] = None  # seconds


@runtime_checkable
class Transport(Protocol):
    """Sends one request and returns the decoded response body.

    Implementations raise ``TransportError`` (or ``MalformedResponseError``)
    on failure. Cancelling the awaiting task is the cancellation signal;
    implementations should let ``asyncio.CancelledError`` propagate.
    """

    async def send(self, url: str, options: RequestOptions) -> Any:
        ...

    async def aclose(self) -> None:
        ...
