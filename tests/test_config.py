"""
Tests for dispatch config loading and message rendering.
"""

import json

import pytest

from batch_mailer.dispatch.config import DispatchConfig, MessageSettings, load_dispatch_config
from batch_mailer.dispatch.message import build_message
from batch_mailer.errors import ConfigError


def _write_config(tmp_path, **overrides) -> str:
    (tmp_path / "body.html").write_text(
        "<html><body><h1>{{ subject }}</h1><p>{{ sender_name }}</p></body></html>",
        encoding="utf-8",
    )
    raw = {
        "database_url": "sqlite:///mail.db",
        "smtp": {
            "host": "smtp.test",
            "port": 2525,
            "username": "sales@example.com",
            "password_env": "TEST_SMTP_PASSWORD",
        },
        "message": {
            "sender": "sales@example.com",
            "sender_name": "Sales Team",
            "subject": "Price offer",
            "body_template": "body.html",
            "attachments": ["catalog.pdf"],
        },
        "attachment_dir": "files",
        "max_workers": 4,
        "record_timeout_seconds": 2.5,
    }
    raw.update(overrides)
    path = tmp_path / "dispatch.json"
    path.write_text(json.dumps(raw), encoding="utf-8")
    return str(path)


class TestLoadDispatchConfig:
    def test_loads_all_sections(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_SMTP_PASSWORD", "secret")
        config = load_dispatch_config(_write_config(tmp_path))
        assert config.database_url == "sqlite:///mail.db"
        assert config.smtp.host == "smtp.test"
        assert config.smtp.port == 2525
        assert config.smtp.password == "secret"
        assert config.smtp.from_name == "Sales Team"
        assert config.message.attachments == ["catalog.pdf"]
        assert config.attachment_dir == str(tmp_path.resolve() / "files")
        assert config.max_workers == 4
        assert config.record_timeout_seconds == 2.5

    def test_missing_password_env_leaves_blank(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_SMTP_PASSWORD", raising=False)
        config = load_dispatch_config(_write_config(tmp_path))
        assert config.smtp.password == ""

    def test_defaults(self, tmp_path):
        path = _write_config(tmp_path)
        raw = json.loads((tmp_path / "dispatch.json").read_text(encoding="utf-8"))
        path_min = tmp_path / "minimal.json"
        path_min.write_text(json.dumps({"message": raw["message"]}))
        config = load_dispatch_config(path_min)
        assert config.database_url == "sqlite:///batch_mailer.db"
        assert config.smtp.host == "smtp.mail.yahoo.com"
        assert config.smtp.port == 587
        assert config.smtp.username == "sales@example.com"
        assert config.max_workers == 10
        assert config.record_timeout_seconds == 5.0
        assert config.pool.pool_size == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_dispatch_config(tmp_path / "nope.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Malformed"):
            load_dispatch_config(path)

    def test_missing_message_key(self, tmp_path):
        path = tmp_path / "d.json"
        path.write_text(json.dumps({"message": {"sender": "a@example.com"}}))
        with pytest.raises(ConfigError, match="subject"):
            load_dispatch_config(path)

    def test_missing_message_section(self, tmp_path):
        path = tmp_path / "d.json"
        path.write_text(json.dumps({}))
        with pytest.raises(ConfigError):
            load_dispatch_config(path)

    def test_invalid_max_workers(self, tmp_path):
        with pytest.raises(ConfigError):
            load_dispatch_config(_write_config(tmp_path, max_workers=0))

    def test_null_max_workers_means_unbounded(self, tmp_path):
        config = load_dispatch_config(_write_config(tmp_path, max_workers=None))
        assert config.max_workers is None

    @pytest.mark.parametrize("overrides", [
        {"max_workers": "10"},
        {"max_workers": 2.5},
        {"max_workers": True},
        {"record_timeout_seconds": "5"},
        {"record_timeout_seconds": None},
    ])
    def test_wrongly_typed_limits(self, tmp_path, overrides):
        with pytest.raises(ConfigError):
            load_dispatch_config(_write_config(tmp_path, **overrides))

    def test_integer_timeout_is_accepted(self, tmp_path):
        config = load_dispatch_config(_write_config(tmp_path, record_timeout_seconds=3))
        assert config.record_timeout_seconds == 3


class TestBuildMessage:
    def test_renders_message_level_values(self, tmp_path):
        config = load_dispatch_config(_write_config(tmp_path))
        message = build_message(config.message)
        assert "<h1>Price offer</h1>" in message.html_body
        assert "<p>Sales Team</p>" in message.html_body
        assert message.sender == "sales@example.com"
        assert message.attachments == ("catalog.pdf",)

    def test_missing_template(self, tmp_path):
        settings = MessageSettings(
            sender="a@example.com",
            subject="s",
            body_template=str(tmp_path / "missing.html"),
        )
        with pytest.raises(ConfigError, match="template"):
            build_message(settings)

    def test_plain_html_passes_through(self, tmp_path):
        (tmp_path / "static.html").write_text("<p>Kepada Yth. Bapak/Ibu</p>", encoding="utf-8")
        settings = MessageSettings(
            sender="a@example.com",
            subject="s",
            body_template=str(tmp_path / "static.html"),
        )
        assert build_message(settings).html_body == "<p>Kepada Yth. Bapak/Ibu</p>"

    def test_template_syntax_error(self, tmp_path):
        (tmp_path / "broken.html").write_text("<p>{% if subject %}</p>", encoding="utf-8")
        settings = MessageSettings(
            sender="a@example.com",
            subject="s",
            body_template=str(tmp_path / "broken.html"),
        )
        with pytest.raises(ConfigError, match="failed to render"):
            build_message(settings)

    def test_undefined_template_variable(self, tmp_path):
        (tmp_path / "greeting.html").write_text("<p>Dear {{ recipient_name }}</p>", encoding="utf-8")
        settings = MessageSettings(
            sender="a@example.com",
            subject="s",
            body_template=str(tmp_path / "greeting.html"),
        )
        with pytest.raises(ConfigError, match="recipient_name"):
            build_message(settings)

    def test_dispatch_config_rejects_bad_timeout(self):
        settings = MessageSettings(sender="a@example.com", subject="s", body_template="b.html")
        with pytest.raises(ConfigError):
            DispatchConfig(message=settings, record_timeout_seconds=0)
