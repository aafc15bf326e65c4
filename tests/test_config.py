from deedengine.config import Settings


def test_defaults(monkeypatch):
    for name in ("DEED_HEADLESS", "DEED_FETCH_TIMEOUT", "DEED_MAX_CONCURRENCY", "DEED_PAGE_WIDTH", "DEED_PAGE_HEIGHT"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.headless is True
    assert settings.fetch_timeout == 60
    assert settings.max_concurrency == 2
    assert settings.page_envelope == (612.0, 792.0)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DEED_HEADLESS", "False")
    monkeypatch.setenv("DEED_FETCH_TIMEOUT", "15")
    monkeypatch.setenv("DEED_MIN_INLINE_IMAGE_PX", "300")
    monkeypatch.setenv("DEED_VERIFY_TLS", "false")
    monkeypatch.setenv("DEED_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.headless is False
    assert settings.fetch_timeout == 15.0
    assert settings.min_inline_image_px == 300
    assert settings.verify_tls is False
    assert settings.log_level == "DEBUG"
