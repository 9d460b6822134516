from decimal import Decimal
from pathlib import Path

from hoa_ledger.config import Settings
from hoa_ledger.core.money import to_minor


def test_defaults_describe_a_300_rupee_monthly_fee():
    settings = Settings(_env_file=None)

    assert settings.monthly_fee == Decimal("300.00")
    assert to_minor(settings.monthly_fee) == 30000
    assert settings.dues_check_interval_seconds == 3600
    assert settings.max_upload_bytes == 5 * 1024 * 1024
    assert settings.uploads_root_path == Path("uploads")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MONTHLY_FEE", "450.50")
    monkeypatch.setenv("DUES_CHECK_INTERVAL_SECONDS", "60")
    monkeypatch.setenv("CORS_ORIGINS", '["https://ledger.example.org"]')

    settings = Settings(_env_file=None)

    assert to_minor(settings.monthly_fee) == 45050
    assert settings.dues_check_interval_seconds == 60
    assert settings.cors_origins == ["https://ledger.example.org"]
