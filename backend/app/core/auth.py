"""Caller identity: bearer token -> user id through an injected resolver."""

from abc import ABC, abstractmethod

from fastapi import Depends, Header

from app.core.config import settings
from app.core.errors import Unauthorized


class TokenResolver(ABC):
    @abstractmethod
    def resolve(self, token: str) -> str | None:
        """Return the user id owning the token, or None."""
        ...


class StaticTokenResolver(TokenResolver):
    def __init__(self, tokens: dict[str, str]):
        self._tokens = dict(tokens)

    def resolve(self, token: str) -> str | None:
        return self._tokens.get(token)


def get_token_resolver() -> TokenResolver:
    return StaticTokenResolver(settings.auth_tokens)


def get_current_user(
    authorization: str | None = Header(default=None),
    resolver: TokenResolver = Depends(get_token_resolver),
) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized("Missing bearer token")
    user_id = resolver.resolve(authorization[len("Bearer "):].strip())
    if user_id is None:
        raise Unauthorized("Login expired")
    return user_id
