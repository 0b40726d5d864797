import json

import httpx
import pytest

from gridsync.shared.core.errors import MalformedResponseError, TransportError
from gridsync.shared.infrastructure.transport.base import RequestOptions, Transport
from gridsync.shared.infrastructure.transport.http_transport import HttpxTransport

URL = "https://example.test/api/people"


def make_transport(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxTransport(client=client), client


def test_satisfies_transport_protocol():
    assert isinstance(HttpxTransport(), Transport)


@pytest.mark.asyncio
async def test_get_sends_flattened_query_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"data": [], "total": 0})

    transport, client = make_transport(handler)
    payload = {"page": 2, "search": "ada", "sortBy": None, "filters": {"city": "Oslo"}}

    body = await transport.send(URL, RequestOptions(payload=payload, headers={"Authorization": "Bearer t"}))

    assert body == {"data": [], "total": 0}
    assert seen["method"] == "GET"
    assert seen["params"] == {"page": "2", "search": "ada", "filters.city": "Oslo"}
    assert seen["auth"] == "Bearer t"
    await client.aclose()


@pytest.mark.asyncio
async def test_post_sends_json_body():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["content_type"] = request.headers["content-type"]
        return httpx.Response(200, json={"data": [{"id": 1}], "total": 1})

    transport, client = make_transport(handler)
    payload = {"page": 1, "filters": {"city": "Oslo"}}

    body = await transport.send(URL, RequestOptions(method="post", payload=payload))

    assert body["total"] == 1
    assert seen == {"method": "POST", "body": payload, "content_type": "application/json"}
    await client.aclose()


@pytest.mark.asyncio
async def test_get_payload_must_be_mapping():
    transport, client = make_transport(lambda request: httpx.Response(200, json={}))
    with pytest.raises(TransportError, match="GET payload must be a mapping"):
        await transport.send(URL, RequestOptions(payload=["page", 1]))
    await client.aclose()


@pytest.mark.asyncio
async def test_http_error_status():
    transport, client = make_transport(lambda request: httpx.Response(500))
    with pytest.raises(TransportError) as excinfo:
        await transport.send(URL, RequestOptions(payload={"page": 1}))
    assert excinfo.value.status_code == 500
    assert str(excinfo.value) == "HTTP error! status: 500 - Internal Server Error"
    await client.aclose()


@pytest.mark.asyncio
async def test_invalid_json_is_malformed():
    transport, client = make_transport(lambda request: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(MalformedResponseError):
        await transport.send(URL, RequestOptions(payload={"page": 1}))
    await client.aclose()


@pytest.mark.asyncio
async def test_connection_error_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport, client = make_transport(handler)
    with pytest.raises(TransportError, match="failed"):
        await transport.send(URL, RequestOptions(payload={"page": 1}))
    await client.aclose()


@pytest.mark.asyncio
async def test_timeout_is_transport_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    transport, client = make_transport(handler)
    with pytest.raises(TransportError, match="timed out"):
        await transport.send(URL, RequestOptions(payload={"page": 1}))
    await client.aclose()


@pytest.mark.asyncio
async def test_aclose_only_closes_owned_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    await HttpxTransport(client=client).aclose()
    assert not client.is_closed
    await client.aclose()

    owned = HttpxTransport()
    await owned.aclose()
    assert owned.client.is_closed
