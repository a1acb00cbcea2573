"""ATI.SU marketplace feed adapter.

Implements the core FeedPort over the ATI.SU REST API. Requests are plain
blocking HTTP calls executed in a worker thread so the event loop (and the
console) stays responsive while the feed is slow.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from typing import Any, Iterable, Optional

from adapters.ati_mapper import city_names_from_response, contact_from_item, loads_from_feed
from core.errors import UpstreamUnavailableError
from core.models import Contact, Load

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.ati.su"


class AtiFeedClient:
    """Feed adapter that reads loads, contacts and cities from ATI.SU."""

    def __init__(self, api_token: str, base_url: str = DEFAULT_BASE_URL, timeout: float = 30.0) -> None:
        if not api_token:
            raise RuntimeError("ATI_API_TOKEN is required to talk to ATI.SU")
        self._api_token = api_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[dict[str, Any]] = None) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(f"{self._base_url}{path}", data=data, method=method)
        request.add_header("Authorization", f"Bearer {self._api_token}")
        request.add_header("Content-Type", "application/json")
        LOGGER.debug("ATI request: %s %s", method, path)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            if e.code == 401:
                raise UpstreamUnavailableError("ATI.SU rejected the token (401); check ATI_API_TOKEN") from e
            if e.code == 429:
                raise UpstreamUnavailableError("ATI.SU rate limit hit (429 Too Many Requests)") from e
            raise UpstreamUnavailableError(f"ATI.SU error {e.code} on {path}: {detail[:200]}") from e
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            raise UpstreamUnavailableError(f"ATI.SU unreachable on {path}: {e}") from e
        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise UpstreamUnavailableError(f"ATI.SU returned invalid JSON on {path}") from e

    async def fetch_active_loads(self) -> list[Load]:
        """Return the firm's currently published loads in upstream order."""

        data = await asyncio.to_thread(self._request, "GET", "/v1.0/loads")
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamUnavailableError("ATI.SU /v1.0/loads did not return a list")
        loads = loads_from_feed(data)
        LOGGER.info("ATI returned %s loads", len(loads))
        return loads

    async def fetch_contacts(self) -> list[Contact]:
        data = await asyncio.to_thread(self._request, "GET", "/v1.0/firms/contacts")
        if not isinstance(data, list):
            return []
        contacts = [contact for contact in (contact_from_item(item) for item in data if isinstance(item, dict)) if contact]
        LOGGER.info("ATI returned %s contacts", len(contacts))
        return contacts

    async def fetch_city_names(self, city_ids: Iterable[int]) -> dict[int, str]:
        ids = sorted(set(city_ids))
        if not ids:
            return {}
        data = await asyncio.to_thread(self._request, "POST", "/gw/gis-dict/v1/cities/by-ids", {"ids": ids})
        return city_names_from_response(data)
