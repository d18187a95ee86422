"""API schemas for notification provider endpoints."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TEST_MESSAGE = "Test message from the billing system."


class ProviderTestRequest(BaseModel):
    phone: str
    message: str = DEFAULT_TEST_MESSAGE

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("phone")
    @classmethod
    def _phone_has_digits(cls, value: str) -> str:
        if not any(ch.isdigit() for ch in value):
            raise ValueError("phone must contain digits")
        return value.strip()


class ProviderTestResponse(BaseModel):
    success: bool
    provider_name: str = Field(alias="providerName")
    response: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


__all__ = ["DEFAULT_TEST_MESSAGE", "ProviderTestRequest", "ProviderTestResponse"]
