from buildcheck.config import DEV_SECRET_KEY, Settings


def test_from_env_reads_variables(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "prod-secret")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_1")
    monkeypatch.setenv("APP_URL", "https://app.example.com/")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "false")
    monkeypatch.setenv("SESSION_MAX_AGE", "3600")

    settings = Settings.from_env()

    assert settings.secret_key == "prod-secret"
    assert settings.billing_enabled
    assert settings.app_url == "https://app.example.com"
    assert settings.session_cookie_secure is False
    assert settings.session_max_age == 3600


def test_from_env_defaults(monkeypatch):
    for name in ("SECRET_KEY", "JWT_SECRET", "STRIPE_SECRET_KEY", "SESSION_MAX_AGE", "SESSION_COOKIE_SECURE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SESSION_MAX_AGE", "soon")

    settings = Settings.from_env()

    assert settings.secret_key == DEV_SECRET_KEY
    assert not settings.billing_enabled
    assert settings.session_cookie_secure is True
    assert settings.session_max_age == 7 * 24 * 60 * 60
