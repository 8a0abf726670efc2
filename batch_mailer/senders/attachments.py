"""
Attachment source: resolves file identifiers from the message config into
bytes right before each send.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from batch_mailer.errors import AttachmentMissing


@dataclass(frozen=True)
class Attachment:
    """A resolved attachment ready to be placed in a MIME message."""

    filename: str
    content: bytes
    mime_type: str = "application/octet-stream"


class AttachmentSource:
    """
    Resolve attachment identifiers to files under a base directory.

    Identifiers are relative paths; absolute paths are used as-is. Nothing
    is cached, so a file removed mid-batch is reported as missing for
    every later send.

    Usage:
        source = AttachmentSource("attachments/")
        catalog = source.resolve("catalog.pdf")
    """

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()

    def path_for(self, file_id: str) -> Path:
        path = Path(file_id)
        return path if path.is_absolute() else self.base_dir / path

    def resolve(self, file_id: str) -> Attachment:
        path = self.path_for(file_id)
        try:
            content = path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, PermissionError) as exc:
            raise AttachmentMissing(file_id) from exc
        mime_type, _ = mimetypes.guess_type(path.name)
        return Attachment(
            filename=path.name,
            content=content,
            mime_type=mime_type or "application/octet-stream",
        )
