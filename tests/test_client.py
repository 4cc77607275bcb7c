import asyncio

import httpx
import pytest

from goldcast_cog.client import AuthenticationError, ClientWrapper, parse_json


def _wrapper(handler, token: str = "some-api-key") -> ClientWrapper:
    transport = httpx.MockTransport(handler)
    return ClientWrapper(
        {"token": token},
        client=httpx.AsyncClient(base_url="https://customapi.goldcast.io/", transport=transport),
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def test_authenticates_with_token_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["authorization"] = request.headers["Authorization"]
        return httpx.Response(200, text="[]")

    async def go():
        async with _wrapper(handler) as client:
            await client.fetch_collection("events")

    asyncio.run(go())
    assert seen["authorization"] == "Token some-api-key"

@pytest.mark.parametrize("auth", [{}, {"token": ""}, {"token": "   "}])
def test_missing_token_is_fatal(auth):
    with pytest.raises(AuthenticationError, match="Personal Access Token"):
        ClientWrapper(auth)

# ---------------------------------------------------------------------------
# Resource Paths
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "call,path",
    [
        (lambda c: c.fetch_collection("events"), "/events/"),
        (lambda c: c.fetch_by_id("event_members", "42"), "/event/event-members/42/"),
        (lambda c: c.fetch_collection("event_registrants", "42"), "/event/42/get_event_registrants/"),
    ],
)
def test_resource_paths(call, path):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, text='{"ok": true}')

    async def go():
        async with _wrapper(handler) as client:
            return await call(client)

    body = asyncio.run(go())
    assert seen == [path]
    assert body == '{"ok": true}'

def test_http_errors_raise():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"description": "Event not found"})

    async def go():
        async with _wrapper(handler) as client:
            await client.fetch_collection("events")

    with pytest.raises(httpx.HTTPStatusError) as info:
        asyncio.run(go())
    assert info.value.response.status_code == 404

def test_unknown_category():
    async def go():
        async with _wrapper(lambda request: httpx.Response(200)) as client:
            await client.fetch_collection("speakers")

    with pytest.raises(KeyError, match="speakers"):
        asyncio.run(go())

# ---------------------------------------------------------------------------
# Precision-safe Parsing
# ---------------------------------------------------------------------------

def test_parse_json_keeps_integers_exact():
    parsed = parse_json('{"id": 123456789012345678901234567890, "ratio": 0.5, "tags": [1, 2]}')
    assert parsed["id"] == "123456789012345678901234567890"
    assert parsed["ratio"] == 0.5
    assert parsed["tags"] == ["1", "2"]

def test_parse_json_accepts_bytes():
    assert parse_json(b'[{"id": 7}]') == [{"id": "7"}]

def test_parse_json_passes_decoded_payloads_through():
    payload = [{"id": 7}]
    assert parse_json(payload) is payload

@pytest.mark.parametrize("payload", ["", "   ", None])
def test_parse_json_empty(payload):
    assert parse_json(payload) is None
