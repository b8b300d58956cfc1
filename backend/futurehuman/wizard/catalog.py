"""Static catalogs shown by the wizard: connection providers and brain tiers."""

from dataclasses import dataclass, field
from typing import Literal, Optional

Category = Literal["social", "email", "calendar", "commerce", "messaging", "automation", "other"]
AuthKind = Literal["oauth", "apiKey", "webhook", "none"]


@dataclass(frozen=True)
class ConfigField:
    name: str
    label: str
    type: Literal["text", "secret"] = "text"


@dataclass(frozen=True)
class Provider:
    id: str
    ext_id: str
    name: str
    category: Category
    auth: AuthKind
    description: str = ""
    config_fields: tuple[ConfigField, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class BrainTier:
    id: str
    title: str
    subtitle: str
    locked: bool = False


PROVIDERS: tuple[Provider, ...] = (
    Provider(
        id="facebook", ext_id="facebook", name="Facebook", category="social",
        auth="oauth", description="Pages & Insights",
        config_fields=(ConfigField("page_id", "Page ID"),),
    ),
    Provider(
        id="whatsapp", ext_id="whatsapp", name="WhatsApp", category="messaging",
        auth="apiKey", description="Send & receive messages",
        config_fields=(ConfigField("api_key", "API Key", "secret"),),
    ),
    Provider(
        id="gmail", ext_id="gmail", name="Gmail", category="email",
        auth="oauth", description="Send email",
    ),
    Provider(
        id="google_calendar", ext_id="google_calendar", name="Google Calendar",
        category="calendar", auth="oauth", description="Read/write events",
    ),
    Provider(
        id="shopify", ext_id="shopify", name="Shopify", category="commerce",
        auth="apiKey", description="Orders & products",
        config_fields=(
            ConfigField("store", "Store URL"),
            ConfigField("access_token", "Access Token", "secret"),
        ),
    ),
    Provider(
        id="webhook", ext_id="webhook", name="Webhook", category="automation",
        auth="webhook", description="Generic HTTP webhook",
        config_fields=(ConfigField("url", "Webhook URL"),),
    ),
)

BRAIN_TIERS: tuple[BrainTier, ...] = (
    BrainTier("level1", "Agent Level One", "Instant, accurate single-step answers & lookups"),
    BrainTier("level2", "Agent Level 2", "Smart multi-step reasoning, handles workflows & follow-ups"),
    BrainTier(
        "super", "Super Brain",
        "Elite long-term planning, creativity & coding",
        locked=True,
    ),
)

_PROVIDERS_BY_ID = {p.id: p for p in PROVIDERS}
_TIERS_BY_ID = {t.id: t for t in BRAIN_TIERS}


def get_provider(provider_id: str) -> Optional[Provider]:
    return _PROVIDERS_BY_ID.get(provider_id)


def get_brain_tier(tier_id: str) -> Optional[BrainTier]:
    return _TIERS_BY_ID.get(tier_id)


def search_providers(query: str = "", category: Optional[Category] = None) -> list[Provider]:
    """Catalog filter: case-insensitive match on name or description."""
    needle = query.strip().lower()
    return [
        p for p in PROVIDERS
        if (category is None or p.category == category)
        and (not needle or needle in p.name.lower() or needle in p.description.lower())
    ]
