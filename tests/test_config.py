from wayfarer.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.price_drop_threshold == 0.05
    assert s.snapshot_limit == 6
    assert s.price_check_interval_hours == 6
    assert s.amadeus_timeout_seconds == 30.0


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PRICE_DROP_THRESHOLD", "0.1")
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    s = Settings(_env_file=None)
    assert s.price_drop_threshold == 0.1
    assert s.smtp_configured is True
    assert s.cors_origin_list == ["http://a.test", "http://b.test"]


def test_smtp_not_configured_without_host(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "")
    assert Settings(_env_file=None).smtp_configured is False
