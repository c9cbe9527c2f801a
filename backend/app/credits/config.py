"""Configuration helpers for the dollar credits add-on."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os

SETTINGS_PREFIX = "misc.dollar-credits."
CREDITS_PER_DOLLAR_KEY = "credits_per_dollar"


@dataclass(frozen=True)
class CreditConfig:
    """Settings controlling credit to dollar conversion."""

    credits_per_dollar: int = 0
    settings_prefix: str = SETTINGS_PREFIX
    pay_base_url: str = ""
    history_page_size: int = 20

    def __post_init__(self) -> None:
        if self.credits_per_dollar < 0:
            raise ValueError("credits_per_dollar must be >= 0")
        if self.history_page_size < 1:
            raise ValueError("history_page_size must be >= 1")

    @property
    def has_ratio(self) -> bool:
        return self.credits_per_dollar > 0


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def load_credit_config(
    env: Optional[Mapping[str, str]] = None,
    settings: Optional[Mapping[str, str]] = None,
) -> CreditConfig:
    """Load :class:`CreditConfig` from environment variables and stored settings.

    ``settings`` holds the values saved through the admin settings form, keyed
    with the add-on prefix (``misc.dollar-credits.credits_per_dollar``). A
    stored value wins over the environment.
    """

    env_mapping = os.environ if env is None else env
    stored = settings or {}

    credits_per_dollar = _to_int(env_mapping.get("DOLLAR_CREDITS_PER_DOLLAR"), default=0)
    stored_ratio = stored.get(SETTINGS_PREFIX + CREDITS_PER_DOLLAR_KEY)
    if stored_ratio not in (None, ""):
        credits_per_dollar = _to_int(stored_ratio, default=credits_per_dollar)

    pay_base_url = env_mapping.get("DOLLAR_CREDITS_PAY_BASE_URL", "")
    history_page_size = _to_int(env_mapping.get("DOLLAR_CREDITS_HISTORY_PAGE_SIZE"), default=20)

    return CreditConfig(
        credits_per_dollar=credits_per_dollar,
        pay_base_url=pay_base_url.rstrip("/"),
        history_page_size=history_page_size,
    )
