"""Customer messaging configuration, gateway adapters and templates."""

from .config import MessagingConfig, load_messaging_config
from .providers import (
    FonnteChannel,
    GowaChannel,
    MpwaChannel,
    NotificationChannel,
    ProviderError,
    ProviderType,
    WablasChannel,
    WahaChannel,
    create_channel,
)
from .renderer import DEFAULT_TEMPLATES, PAYMENT_SUCCESS, default_template, format_amount, render_template

__all__ = [
    "DEFAULT_TEMPLATES",
    "FonnteChannel",
    "GowaChannel",
    "MessagingConfig",
    "MpwaChannel",
    "NotificationChannel",
    "PAYMENT_SUCCESS",
    "ProviderError",
    "ProviderType",
    "WablasChannel",
    "WahaChannel",
    "create_channel",
    "default_template",
    "format_amount",
    "load_messaging_config",
    "render_template",
]
