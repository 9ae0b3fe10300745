"""Request-scoped collaborators for the chat relay. Tests override these."""

from fastapi import Depends

from app.core.config import settings
from app.core.database import engine
from app.services.llm import get_upstream_client
from app.services.llm.base import BaseUpstreamClient
from app.services.offload import BaseOffloader, get_offloader
from app.services.relay.relay import ChatRelay
from app.services.search import BaseSearchProvider, get_search_provider
from app.services.storage import ChatStore


def get_store() -> ChatStore:
    return ChatStore(engine)


def get_relay(
    store: ChatStore = Depends(get_store),
    upstream: BaseUpstreamClient = Depends(get_upstream_client),
    search: BaseSearchProvider | None = Depends(get_search_provider),
    offloader: BaseOffloader | None = Depends(get_offloader),
) -> ChatRelay:
    return ChatRelay(store, upstream, search=search, offloader=offloader, tz=settings.context_timezone)
