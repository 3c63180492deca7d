"""Tests for settings loading."""

from decimal import Decimal

import pytest

from timesheet_payroll.config import Settings


@pytest.fixture(autouse=True)
def no_dotenv(monkeypatch):
    monkeypatch.setattr("timesheet_payroll.config.load_dotenv", lambda: None)


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PAYROLL_DEFAULT_DEDUCTION_RATE", raising=False)
        monkeypatch.delenv("PAYROLL_OVERTIME_MULTIPLIER", raising=False)
        settings = Settings.from_env()

        assert settings.default_deduction_rate is None
        assert settings.overtime_multiplier == Decimal("1.5")
        assert settings.default_payment_method in {"direct_deposit", "check", "cash", "wire_transfer"}

    def test_deduction_rate_parsed(self, monkeypatch):
        monkeypatch.setenv("PAYROLL_DEFAULT_DEDUCTION_RATE", "0.15")
        assert Settings.from_env().default_deduction_rate == Decimal("0.15")

    def test_zero_rate_means_none(self, monkeypatch):
        monkeypatch.setenv("PAYROLL_DEFAULT_DEDUCTION_RATE", "0")
        assert Settings.from_env().default_deduction_rate is None

    @pytest.mark.parametrize("raw", ["1.5", "-0.1", "ten percent"])
    def test_invalid_rate_rejected(self, monkeypatch, raw):
        monkeypatch.setenv("PAYROLL_DEFAULT_DEDUCTION_RATE", raw)
        with pytest.raises(ValueError):
            Settings.from_env()
