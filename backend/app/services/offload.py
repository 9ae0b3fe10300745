"""Attachment offload: replace inline data-URI images with stored file URLs."""

import base64
import binascii
import hashlib
import logging
import mimetypes
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from app.core.config import settings
from app.core.sandbox import resolve_upload_path

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[\w=.+-]+)*;base64,(?P<data>.*)$", re.DOTALL)


def inline_data_uri(part: dict[str, Any]) -> str | None:
    """The data URI carried by an image part, if it is inline."""
    if part.get("type") != "image_url":
        return None
    image = part.get("image_url")
    url = image.get("url") if isinstance(image, dict) else None
    if isinstance(url, str) and url.startswith("data:"):
        return url
    return None


def has_inline_payload(content: str | list[dict[str, Any]]) -> bool:
    return isinstance(content, list) and any(inline_data_uri(p) for p in content)


class BaseOffloader(ABC):
    async def offload(self, parts: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Return parts with inline payloads swapped for references.

        A part that fails to store is kept as-is; it never blocks the others.
        """
        rewritten = []
        for part in parts:
            data_uri = inline_data_uri(part)
            if data_uri is None:
                rewritten.append(part)
                continue
            try:
                url = await self.store(data_uri)
            except Exception as e:
                logger.warning(f"Attachment offload failed, keeping inline payload: {e}")
                rewritten.append(part)
                continue
            rewritten.append({**part, "image_url": {**part["image_url"], "url": url}})
        return rewritten

    @abstractmethod
    async def store(self, data_uri: str) -> str:
        """Persist one data URI and return its stable URL."""
        ...


class LocalFileOffloader(BaseOffloader):
    """Stores attachments content-addressed in the uploads directory."""

    def __init__(self, base_url: str, uploads_dir: Path | None = None):
        self.base_url = base_url.rstrip("/")
        self.uploads_dir = uploads_dir

    async def store(self, data_uri: str) -> str:
        match = DATA_URI_RE.match(data_uri)
        if not match:
            raise ValueError("Not a base64 data URI")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 payload: {e}") from e

        ext = mimetypes.guess_extension(match.group("mime")) or ".bin"
        name = hashlib.sha256(data).hexdigest() + ext
        path = (self.uploads_dir / name) if self.uploads_dir else resolve_upload_path(name)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return f"{self.base_url}/uploads/{name}"


def get_offloader() -> BaseOffloader | None:
    if settings.offload_provider == "local":
        return LocalFileOffloader(settings.public_base_url)
    elif settings.offload_provider == "none":
        return None
    else:
        raise ValueError(f"Unknown offload provider: {settings.offload_provider}")
