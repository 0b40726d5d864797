"""httpx-backed transport for remote tables."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional

import httpx

from gridsync.shared.core.errors import MalformedResponseError, TransportError
from gridsync.shared.core.paths import flatten_object

from .base import RequestOptions

logger = logging.getLogger(__name__)


class HttpxTransport:
    """HTTP transport over a shared ``httpx.AsyncClient``.

    GET requests carry the payload as query parameters (nested mappings are
    flattened to dotted keys); other methods send it as a JSON body.
    """

    DEFAULT_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self, extra: Mapping[str, str]) -> Dict[str, str]:
        return {**self.DEFAULT_HEADERS, **extra}

    @staticmethod
    def _query_params(payload: Any) -> Dict[str, Any]:
        if payload is None:
            return {}
        if not isinstance(payload, Mapping):
            raise TransportError(f"GET payload must be a mapping, got {type(payload).__name__}")
        params = flatten_object(payload)
        # httpx would send None as an empty value; omit it instead
        return {k: v for k, v in params.items() if v is not None}

    async def send(self, url: str, options: RequestOptions) -> Any:
        """Issue the request and decode the JSON body.

        Raises:
            TransportError: Network failure, timeout or non-2xx status
            MalformedResponseError: Body is not valid JSON
        """
        method = options.method.upper()
        kwargs: Dict[str, Any] = {"headers": self._headers(options.headers)}
        if options.timeout is not None:
            kwargs["timeout"] = options.timeout
        if method == "GET":
            kwargs["params"] = self._query_params(options.payload)
        else:
            kwargs["json"] = options.payload

        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportError(
                f"HTTP error! status: {status} - {e.response.reason_phrase}",
                status_code=status,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedResponseError(f"Response from {url} is not valid JSON") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
