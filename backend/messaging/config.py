"""Messaging configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional
import os


@dataclass(frozen=True)
class MessagingConfig:
    """Configuration for outbound customer messaging."""

    default_country_code: str
    provider_timeout_seconds: float
    company_name: str
    company_phone: str
    currency_prefix: str


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_messaging_config(env: Optional[Mapping[str, str]] = None) -> MessagingConfig:
    """Load :class:`MessagingConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    country_code = "".join(ch for ch in env_mapping.get("DEFAULT_COUNTRY_CODE", "62") if ch.isdigit())
    timeout = _to_float(env_mapping.get("PROVIDER_TIMEOUT_SECONDS"), default=15.0)

    return MessagingConfig(
        default_country_code=country_code or "62",
        provider_timeout_seconds=max(1.0, timeout),
        company_name=env_mapping.get("COMPANY_NAME", "ISP Billing"),
        company_phone=env_mapping.get("COMPANY_PHONE", ""),
        currency_prefix=env_mapping.get("CURRENCY_PREFIX", "Rp"),
    )
