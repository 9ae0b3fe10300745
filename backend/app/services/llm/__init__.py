"""Upstream client factory."""

import httpx

from app.core.config import settings
from app.services.llm.base import BaseUpstreamClient


def get_upstream_client() -> BaseUpstreamClient:
    """Factory function that returns the configured upstream client."""
    from app.services.llm.openai_compat import OpenAICompatibleClient
    return OpenAICompatibleClient(
        completions_path=settings.upstream_completions_path,
        timeout=httpx.Timeout(settings.upstream_read_timeout, connect=settings.upstream_connect_timeout),
        temperature=settings.upstream_temperature,
    )
