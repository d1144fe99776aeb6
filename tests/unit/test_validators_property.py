"""Property-based and example tests for settings validators."""

import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from src.app.core.config import Settings
from src.app.models.enums import TenantStatus

pytestmark = pytest.mark.unit

DB_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides) -> Settings:
    return Settings(database_url=DB_URL, _env_file=None, **overrides)


class TestTenantInitialStatus:
    def test_defaults_to_pending(self):
        assert make_settings().tenant_initial_status == TenantStatus.PENDING

    def test_accepts_active(self):
        assert make_settings(tenant_initial_status="active").tenant_initial_status == (
            TenantStatus.ACTIVE
        )

    def test_rejects_archived(self):
        with pytest.raises(ValidationError):
            make_settings(tenant_initial_status="archived")


class TestRetryBudgets:
    @given(st.integers(max_value=0))
    def test_non_positive_budgets_rejected(self, attempts):
        for field in ("invite_code_max_attempts", "optimistic_retry_attempts", "cascade_max_attempts"):
            with pytest.raises(ValidationError):
                make_settings(**{field: attempts})

    @given(st.integers(min_value=1, max_value=100))
    def test_positive_budgets_accepted(self, attempts):
        settings = make_settings(cascade_max_attempts=attempts)
        assert settings.cascade_max_attempts == attempts


class TestInviteCodeBytes:
    @given(st.integers(min_value=-10, max_value=7))
    def test_short_codes_rejected(self, size):
        with pytest.raises(ValidationError):
            make_settings(invite_code_bytes=size)

    @given(st.integers(min_value=8, max_value=64))
    def test_long_enough_codes_accepted(self, size):
        assert make_settings(invite_code_bytes=size).invite_code_bytes == size


class TestAppUrl:
    @pytest.mark.parametrize(
        "url", ["http://localhost:3000", "http://127.0.0.1:8080", "https://app.localhost"]
    )
    def test_allowed_domains(self, url):
        assert make_settings(app_url=url).app_url == url

    def test_custom_allowed_domain(self):
        settings = make_settings(
            allowed_app_url_domains=["example.com"], app_url="https://app.example.com"
        )
        assert settings.app_url == "https://app.example.com"

    @pytest.mark.parametrize("url", ["https://evil.com", "https://localhost.evil.com"])
    def test_rejects_unlisted_domains(self, url):
        with pytest.raises(ValidationError):
            make_settings(app_url=url)


def test_is_sqlite():
    assert make_settings().is_sqlite
    postgres = Settings(database_url="postgresql+asyncpg://u:p@db/app", _env_file=None)
    assert not postgres.is_sqlite
