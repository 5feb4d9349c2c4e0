import pytest

from support_bridge.settings import ConfigurationError, Settings


def test_missing_required_lists_env_names(monkeypatch):
    for name in ("BOT_TOKEN", "ADMIN_GROUP_ID", "REQUESTS_THREAD_ID", "LOGS_THREAD_ID"):
        monkeypatch.delenv(name, raising=False)

    cfg = Settings(_env_file=None)

    assert cfg.missing_required() == [
        "BOT_TOKEN",
        "ADMIN_GROUP_ID",
        "REQUESTS_THREAD_ID",
        "LOGS_THREAD_ID",
    ]
    with pytest.raises(ConfigurationError) as exc_info:
        cfg.ensure_configured()
    assert "BOT_TOKEN" in str(exc_info.value)


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", "123:secret")  # pragma: allowlist secret
    monkeypatch.setenv("ADMIN_GROUP_ID", "-1001234567890")
    monkeypatch.setenv("REQUESTS_THREAD_ID", "2")
    monkeypatch.setenv("LOGS_THREAD_ID", "3")
    monkeypatch.setenv("PORT", "8080")

    cfg = Settings(_env_file=None)

    assert cfg.missing_required() == []
    cfg.ensure_configured()
    assert cfg.requests_thread_id == 2
    assert cfg.port == 8080


@pytest.mark.parametrize(
    "origin, expected",
    [
        ("https://bridge.example.com", True),
        ("https://bridge.example.com:8443", True),
        ("https://bridge.example.com/", False),
        ("http://bridge.example.com", False),
        (None, False),
    ],
)
def test_webhook_only_for_bare_https_origin(origin, expected):
    cfg = Settings(_env_file=None, BOT_TOKEN="123:secret", PUBLIC_ORIGIN=origin)  # pragma: allowlist secret

    assert cfg.wants_webhook is expected
    if expected:
        assert cfg.webhook_url == f"{origin}/telegram/123:secret"
    else:
        assert cfg.webhook_url is None


def test_cors_origins_split():
    cfg = Settings(_env_file=None, CORS_ALLOW_ORIGINS="https://a.example, https://b.example ,")

    assert cfg.get_cors_origins() == ["https://a.example", "https://b.example"]
