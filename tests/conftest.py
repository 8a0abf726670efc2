"""
Shared fixtures: a file-backed SQLite store and a fixed message.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from batch_mailer.dispatch.message import OutboundMessage
from batch_mailer.store.recipients import RecipientStore


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'recipients.db'}"


@pytest.fixture
def store(db_url: str) -> RecipientStore:
    s = RecipientStore(db_url)
    s.create_tables()
    yield s
    s.close()


@pytest.fixture
def message() -> OutboundMessage:
    return OutboundMessage(
        sender="sales@example.com",
        subject="Cable tray catalogue",
        html_body="<p>Please find our catalogue attached.</p>",
    )
