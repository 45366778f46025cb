import pytest

from app.core.config import Settings, clear_settings_cache, get_settings
from app.database import normalise_database_url


@pytest.fixture
def fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


def test_environment_overrides(monkeypatch, fresh_settings):
    monkeypatch.setenv("DELIVERY_FEE", "7.50")
    monkeypatch.setenv("MAX_ACTIVE_DELIVERIES", "2")
    monkeypatch.setenv("CORS_ORIGINS", "https://shop.example, https://admin.example")

    settings = get_settings()

    assert settings.DELIVERY_FEE == 7.5
    assert settings.MAX_ACTIVE_DELIVERIES == 2
    assert settings.CORS_ORIGINS == ["https://shop.example", "https://admin.example"]
    assert get_settings() is settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.DELIVERY_FEE == 5.99
    assert settings.MAX_ACTIVE_DELIVERIES == 5
    assert settings.LOCATION_HISTORY_LIMIT == 10


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@db/shop", "postgresql+asyncpg://u:p@db/shop"),
        ("postgresql://u:p@db/shop", "postgresql+asyncpg://u:p@db/shop"),
        ("sqlite+aiosqlite:///:memory:", "sqlite+aiosqlite:///:memory:"),
    ],
)
def test_normalise_database_url(url, expected):
    assert normalise_database_url(url) == expected
