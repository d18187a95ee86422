"""Billing and session-invalidation configuration."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone, tzinfo
from enum import Enum
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import os


class CoaMode(str, Enum):
    RADCLIENT = "radclient"
    HTTP = "http"
    DISABLED = "disabled"


@dataclass(frozen=True)
class BillingConfig:
    """Configuration for payment reconciliation."""

    billing_timezone: str
    ledger_income_category: str
    coa_mode: CoaMode
    coa_endpoint: Optional[str]
    coa_timeout_seconds: float
    radclient_path: str
    coa_port: int
    admin_api_token: Optional[str]

    @property
    def tzinfo(self) -> tzinfo:
        if self.billing_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.billing_timezone)


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def load_billing_config(env: Optional[Mapping[str, str]] = None) -> BillingConfig:
    """Load :class:`BillingConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    timezone_name = env_mapping.get("BILLING_TIMEZONE", "UTC").strip() or "UTC"
    if timezone_name.upper() != "UTC":
        try:
            ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown BILLING_TIMEZONE {timezone_name!r}") from exc

    mode_value = env_mapping.get("COA_MODE", CoaMode.RADCLIENT.value).strip().lower()
    try:
        coa_mode = CoaMode(mode_value)
    except ValueError as exc:
        raise ValueError(f"Unsupported COA_MODE {mode_value!r}") from exc

    coa_endpoint = env_mapping.get("COA_ENDPOINT") or None
    if coa_mode == CoaMode.HTTP and not coa_endpoint:
        raise ValueError("COA_ENDPOINT is required when COA_MODE=http")

    return BillingConfig(
        billing_timezone=timezone_name,
        ledger_income_category=env_mapping.get("LEDGER_INCOME_CATEGORY", "Subscription Payment"),
        coa_mode=coa_mode,
        coa_endpoint=coa_endpoint,
        coa_timeout_seconds=max(1.0, _to_float(env_mapping.get("COA_TIMEOUT_SECONDS"), default=10.0)),
        radclient_path=env_mapping.get("RADCLIENT_PATH", "radclient"),
        coa_port=_to_int(env_mapping.get("COA_PORT"), default=3799),
        admin_api_token=env_mapping.get("ADMIN_API_TOKEN") or None,
    )


__all__ = ["BillingConfig", "CoaMode", "load_billing_config"]
