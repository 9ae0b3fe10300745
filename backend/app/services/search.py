"""Web search augmentation: query text in, short text summary (or nothing) out."""

import logging
import re
from abc import ABC, abstractmethod

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class BaseSearchProvider(ABC):
    @abstractmethod
    async def query(self, text: str) -> str | None:
        """Return a text summary of search results, or None when there is nothing useful."""
        ...


class DuckDuckGoSearchProvider(BaseSearchProvider):
    SEARCH_URL = "https://html.duckduckgo.com/html/"

    def __init__(self, max_results: int = 5, transport: httpx.AsyncBaseTransport | None = None):
        self.max_results = max_results
        self._transport = transport

    async def query(self, text: str) -> str | None:
        text = text.strip()
        if not text:
            return None

        try:
            async with httpx.AsyncClient(
                follow_redirects=True, timeout=10.0, transport=self._transport
            ) as client:
                response = await client.get(
                    self.SEARCH_URL,
                    params={"q": text[:300]},
                    headers={"User-Agent": "Chat-Relay/0.1"},
                )
                response.raise_for_status()
                html = response.text
        except httpx.HTTPError as e:
            logger.warning(f"Search failed for {text[:80]!r}: {e}")
            return None

        results = []
        result_blocks = re.findall(
            r'<a rel="nofollow" class="result__a" href="([^"]+)"[^>]*>(.*?)</a>.*?'
            r'<a class="result__snippet"[^>]*>(.*?)</a>',
            html, re.DOTALL,
        )

        for href, title, snippet in result_blocks[:self.max_results]:
            title = re.sub(r'<[^>]+>', '', title).strip()
            snippet = re.sub(r'<[^>]+>', '', snippet).strip()
            results.append(f"- {title}\n  {href}\n  {snippet}")

        if not results:
            return None
        return "\n\n".join(results)


def get_search_provider() -> BaseSearchProvider | None:
    if settings.search_provider == "duckduckgo":
        return DuckDuckGoSearchProvider(max_results=settings.search_max_results)
    elif settings.search_provider == "none":
        return None
    else:
        raise ValueError(f"Unknown search provider: {settings.search_provider}")
