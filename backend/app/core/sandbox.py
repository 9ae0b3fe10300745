"""Sandboxed file access - ensures stored attachments stay within the uploads directory."""

from pathlib import Path

from app.core.config import settings


class SandboxError(Exception):
    pass


def resolve_upload_path(name: str) -> Path:
    """Resolve a file name within the uploads directory. Raises SandboxError if it escapes."""
    uploads_dir = settings.uploads_dir.resolve()
    resolved = (uploads_dir / name).resolve()

    if not resolved.is_relative_to(uploads_dir):
        raise SandboxError(f"Path '{name}' escapes the uploads directory")

    return resolved
