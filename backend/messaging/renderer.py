"""Rendering helpers for customer messages."""
from __future__ import annotations

import re
from typing import Any, Mapping

_PLACEHOLDER_PATTERN = re.compile(r"{{\s*(\w+)\s*}}")

PAYMENT_SUCCESS = "payment-success"

DEFAULT_TEMPLATES = {
    PAYMENT_SUCCESS: (
        "Hi {{customerName}},\n\n"
        "We have received your payment for invoice {{invoiceNumber}} ({{amount}}).\n"
        "Your {{profileName}} service is active.\n\n"
        "Username: {{username}}\n"
        "Password: {{password}}\n\n"
        "Thank you,\n{{companyName}} {{companyPhone}}"
    ),
}


def render_template(template: str, values: Mapping[str, Any]) -> str:
    """Substitute ``{{name}}`` placeholders; unknown or ``None`` values render empty."""

    def _replace(match: re.Match[str]) -> str:
        value = values.get(match.group(1), "")
        return "" if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


def format_amount(amount: int, prefix: str = "Rp") -> str:
    grouped = f"{int(amount):,}".replace(",", ".")
    return f"{prefix} {grouped}".strip()


def default_template(template_type: str) -> str:
    try:
        return DEFAULT_TEMPLATES[template_type]
    except KeyError as exc:
        raise LookupError(f"No built-in template for {template_type!r}") from exc


__all__ = [
    "DEFAULT_TEMPLATES",
    "PAYMENT_SUCCESS",
    "default_template",
    "format_amount",
    "render_template",
]
