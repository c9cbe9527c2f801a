from __future__ import annotations

import pytest

from backend.app.credits import CreditConfig, load_credit_config


def test_defaults_leave_add_on_unconfigured():
    config = load_credit_config(env={})

    assert config.credits_per_dollar == 0
    assert config.has_ratio is False
    assert config.pay_base_url == ""
    assert config.history_page_size == 20


def test_reads_environment():
    config = load_credit_config(
        env={
            "DOLLAR_CREDITS_PER_DOLLAR": "100",
            "DOLLAR_CREDITS_PAY_BASE_URL": "https://members.example.org/",
            "DOLLAR_CREDITS_HISTORY_PAGE_SIZE": "50",
        }
    )

    assert config.credits_per_dollar == 100
    assert config.pay_base_url == "https://members.example.org"
    assert config.history_page_size == 50


def test_stored_settings_override_environment():
    config = load_credit_config(
        env={"DOLLAR_CREDITS_PER_DOLLAR": "100"},
        settings={"misc.dollar-credits.credits_per_dollar": "250"},
    )

    assert config.credits_per_dollar == 250


def test_blank_stored_setting_falls_back_to_environment():
    config = load_credit_config(
        env={"DOLLAR_CREDITS_PER_DOLLAR": "100"},
        settings={"misc.dollar-credits.credits_per_dollar": ""},
    )

    assert config.credits_per_dollar == 100


def test_rejects_non_integer_ratio():
    with pytest.raises(ValueError):
        load_credit_config(env={"DOLLAR_CREDITS_PER_DOLLAR": "1.5"})


def test_rejects_negative_ratio():
    with pytest.raises(ValueError):
        CreditConfig(credits_per_dollar=-1)


def test_rejects_empty_pages():
    with pytest.raises(ValueError):
        load_credit_config(env={"DOLLAR_CREDITS_HISTORY_PAGE_SIZE": "0"})
