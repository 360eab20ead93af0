import logging
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urlparse

import httpx

from config import settings
from services.errors import SearchProviderError

logger = logging.getLogger(__name__)

_HOST_PREFIXES = ("www.", "m.", "old.")


@dataclass
class SearchResult:
    title: str
    snippet: str
    url: str
    source: str


def source_from_url(url: str) -> str:
    try:
        host = urlparse(url or "").hostname
    except ValueError:
        # malformed netloc, e.g. an unclosed IPv6 bracket
        return "unknown"
    if not host:
        return "unknown"
    for prefix in _HOST_PREFIXES:
        if host.startswith(prefix):
            return host[len(prefix):]
    return host


class SerperSearchClient:
    """Google search through the Serper API, bounded by a per-request timeout."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_results: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.serper_api_key
        self.api_url = api_url or settings.serper_api_url
        self.timeout = timeout if timeout is not None else settings.search_timeout
        self.max_results = max_results or settings.search_max_results
        self._client = client

    def search(self, query: str, num: int = 10) -> List[SearchResult]:
        if not self.api_key:
            raise SearchProviderError("SERPER_API_KEY not configured")

        payload = {
            "q": query,
            "num": max(1, min(num, self.max_results)),
            "gl": settings.serper_gl,
            "hl": settings.serper_hl,
        }
        headers = {"X-API-KEY": self.api_key, "Content-Type": "application/json"}

        try:
            response = self._post(payload, headers)
        except httpx.TimeoutException as e:
            logger.warning(f"Serper search timed out for '{query}'")
            raise SearchProviderError(f"Search timed out: {query}") from e
        except httpx.HTTPError as e:
            logger.warning(f"Serper transport error for '{query}': {e}")
            raise SearchProviderError(f"Search request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"Serper returned {response.status_code} for '{query}'")
            raise SearchProviderError(
                f"Search returned status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SearchProviderError("Search returned invalid JSON") from e

        return _parse_organic_results(data)[: payload["num"]]

    def _post(self, payload: dict, headers: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.api_url, json=payload, headers=headers)


def _parse_organic_results(data: Any) -> List[SearchResult]:
    if not isinstance(data, dict):
        return []
    results: List[SearchResult] = []
    for item in data.get("organic") or []:
        link = item.get("link") or ""
        results.append(
            SearchResult(
                title=item.get("title") or "",
                snippet=item.get("snippet") or "",
                url=link,
                source=source_from_url(link),
            )
        )
    return results
