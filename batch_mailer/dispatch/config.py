"""
Dispatch configuration model.

Defines the SMTP relay, the fixed message, the recipient store, and the
worker limits for a batch run. Loaded from a JSON config file with the
SMTP password sourced from an environment variable.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from batch_mailer.errors import ConfigError
from batch_mailer.senders.smtp_sender import SmtpConfig
from batch_mailer.store.recipients import PoolSettings


@dataclass
class MessageSettings:
    """The fixed message sent to every recipient of a batch.

    Attributes:
        sender: Address placed in the From header and the SMTP envelope.
        subject: Subject line.
        body_template: Path to the HTML body template.
        sender_name: Optional display name for the From header.
        attachments: File identifiers resolved before every send.
    """

    sender: str
    subject: str
    body_template: str
    sender_name: str = ""
    attachments: list[str] = field(default_factory=list)


@dataclass
class DispatchConfig:
    """Global dispatch configuration.

    Attributes:
        message: The message delivered by every batch.
        smtp: SMTP relay settings.
        database_url: SQLAlchemy URL of the recipient store.
        pool: Connection pool sizing; ignored for in-memory SQLite.
        attachment_dir: Base directory for relative attachment identifiers.
        max_workers: Upper bound on concurrent deliveries; None means one
                     thread per selected recipient.
        record_timeout_seconds: Timeout for each delivered-flag write.
    """

    message: MessageSettings
    smtp: SmtpConfig = field(default_factory=SmtpConfig)
    database_url: str = "sqlite:///batch_mailer.db"
    pool: PoolSettings = field(default_factory=PoolSettings)
    attachment_dir: Optional[str] = None
    max_workers: Optional[int] = 10
    record_timeout_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_workers is not None and not _is_number(self.max_workers, int):
            raise ConfigError(f"max_workers must be an integer or null, got {self.max_workers!r}")
        if not _is_number(self.record_timeout_seconds, (int, float)):
            raise ConfigError(
                f"record_timeout_seconds must be a number, got {self.record_timeout_seconds!r}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.record_timeout_seconds <= 0:
            raise ConfigError("record_timeout_seconds must be positive")


def _is_number(value: Any, kinds) -> bool:
    return isinstance(value, kinds) and not isinstance(value, bool)


def load_dispatch_config(config_path: str | Path) -> DispatchConfig:
    """Load a DispatchConfig from a JSON file.

    The SMTP password is read from the environment variable named by
    ``smtp.password_env``. Relative ``body_template`` and
    ``attachment_dir`` paths are resolved against the config file's
    directory.

    Args:
        config_path: Path to the dispatch config JSON file.

    Returns:
        A fully populated DispatchConfig instance.

    Raises:
        ConfigError: If the file is missing, malformed, or lacks a
                     required key.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Dispatch config not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw: dict[str, Any] = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Malformed dispatch config {path}: {e}") from e

    base_dir = path.resolve().parent

    # --- Message ---
    msg_raw = raw.get("message")
    if not isinstance(msg_raw, dict):
        raise ConfigError("Dispatch config requires a 'message' section")
    try:
        message = MessageSettings(
            sender=msg_raw["sender"],
            subject=msg_raw["subject"],
            body_template=str(base_dir / msg_raw["body_template"]),
            sender_name=msg_raw.get("sender_name", ""),
            attachments=list(msg_raw.get("attachments", [])),
        )
    except KeyError as e:
        raise ConfigError(f"Missing required message setting: {e.args[0]}") from e

    # --- SMTP ---
    smtp_raw = raw.get("smtp", {})
    password_env = smtp_raw.get("password_env", "")
    smtp = SmtpConfig(
        host=smtp_raw.get("host", "smtp.mail.yahoo.com"),
        port=smtp_raw.get("port", 587),
        use_tls=smtp_raw.get("use_tls", True),
        username=smtp_raw.get("username", message.sender),
        password=os.environ.get(password_env, "") if password_env else "",
        from_name=message.sender_name,
        timeout=smtp_raw.get("timeout", 30.0),
    )

    # --- Store ---
    pool_raw = raw.get("pool", {})
    pool = PoolSettings(
        pool_size=pool_raw.get("pool_size", 5),
        max_overflow=pool_raw.get("max_overflow", 5),
        pool_recycle_seconds=pool_raw.get("pool_recycle_seconds", 60),
    )

    attachment_dir = raw.get("attachment_dir")
    if attachment_dir is not None:
        attachment_dir = str(base_dir / attachment_dir)

    return DispatchConfig(
        message=message,
        smtp=smtp,
        database_url=raw.get("database_url", "sqlite:///batch_mailer.db"),
        pool=pool,
        attachment_dir=attachment_dir,
        max_workers=raw.get("max_workers", 10),
        record_timeout_seconds=raw.get("record_timeout_seconds", 5.0),
    )
