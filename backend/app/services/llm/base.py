"""Upstream client interface. The relay only talks to upstream through this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import httpx


@dataclass
class UpstreamError:
    status_code: int
    body: Any  # parsed JSON when possible, raw text otherwise


@dataclass
class UpstreamReply:
    """Either an open streaming response or the error upstream answered with."""

    error: UpstreamError | None = None
    response: httpx.Response | None = None
    _client: httpx.AsyncClient | None = field(default=None, repr=False)

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        if self.response is None:
            return
        async for chunk in self.response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        if self.response is not None:
            await self.response.aclose()
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class BaseUpstreamClient(ABC):
    @abstractmethod
    async def send(
        self, endpoint_url: str, api_key: str, model_id: str, messages: list[dict[str, Any]]
    ) -> UpstreamReply:
        """Open a streaming chat completion. Non-success statuses come back as reply.error."""
        ...
