# client.py
# HTTP access to the Goldcast custom API.
#
# Steps fetch through the ResourceFetcher protocol, which ClientWrapper
# (live) and CachingClientWrapper (cache.py) both implement.

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from goldcast_cog.config import DEFAULT_API_URL
from goldcast_cog.models import FieldDefinition, FieldType

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when a client is built without the required credentials."""


# Category -> path template. Collections scoped to an event take {id}.
RESOURCE_PATHS: dict[str, str] = {
    "events": "events/",
    "event_members": "event/event-members/{id}/",
    "event_registrants": "event/{id}/get_event_registrants/",
}


class ResourceFetcher(Protocol):
    """Lookups against the system under test. Return raw JSON text or decoded JSON."""

    async def fetch_by_id(self, category: str, resource_id: str) -> Any: ...

    async def fetch_collection(self, category: str, scope_id: str | None = None) -> Any: ...


def parse_json(payload: Any) -> Any:
    """
    Decode a raw JSON body with every integer kept as its exact digit string.

    Goldcast ids can exceed what a double holds; reading them as text means
    they match the string ids scenario authors type. Already-decoded payloads
    pass through untouched.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    if isinstance(payload, str):
        if not payload.strip():
            return None
        return json.loads(payload, parse_int=str)
    return payload


class ClientWrapper:
    """
    Authenticated Goldcast API client.

    Example:
        async with ClientWrapper({"token": "..."}) as client:
            raw = await client.fetch_collection("events")
    """

    expected_auth_fields: list[FieldDefinition] = [
        FieldDefinition(key="token", type=FieldType.STRING, description="Personal Access Token"),
    ]

    def __init__(
        self,
        auth: Mapping[str, str],
        client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
    ) -> None:
        token = str(auth.get("token") or "").strip()
        if not token:
            raise AuthenticationError("Personal Access Token was not provided.")

        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._client.headers["Authorization"] = f"Token {token}"
        self._client.headers["Content-Type"] = "application/json"

    async def __aenter__(self) -> "ClientWrapper":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # ResourceFetcher
    # ------------------------------------------------------------------

    async def _get(self, category: str, resource_id: str | None) -> str:
        if category not in RESOURCE_PATHS:
            raise KeyError(f"Unknown resource category '{category}'.")
        path = RESOURCE_PATHS[category].format(id=resource_id)
        logger.debug("GET %s", path)
        response = await self._client.get(path)
        response.raise_for_status()
        # Raw text: callers decode with parse_json to keep large ids intact.
        return response.text

    async def fetch_by_id(self, category: str, resource_id: str) -> str:
        return await self._get(category, resource_id)

    async def fetch_collection(self, category: str, scope_id: str | None = None) -> str:
        return await self._get(category, scope_id)
