"""Runtime settings read from the environment.

Protean's own configuration (databases, brokers, event store) lives under
``[tool.protean]`` in pyproject.toml. The settings here cover the concerns
Protean does not know about: payment provider credentials, the company
details printed on invoices, and the static API tokens used in development.
"""

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

MPESA_SANDBOX_URL = "https://sandbox.safaricom.co.ke"
MPESA_PRODUCTION_URL = "https://api.safaricom.co.ke"

DEFAULT_INVOICE_TERMS = "Payment due within 30 days. Late payments subject to 5% monthly interest."


@dataclass(frozen=True)
class MpesaSettings:
    consumer_key: str = ""
    consumer_secret: str = ""
    pass_key: str = ""
    shortcode: str = "174379"
    callback_url: str = ""
    environment: str = "sandbox"

    @property
    def base_url(self) -> str:
        return MPESA_PRODUCTION_URL if self.environment == "production" else MPESA_SANDBOX_URL

    def missing(self) -> list[str]:
        """Names of the environment variables that still need a value."""
        required = {
            "MPESA_CONSUMER_KEY": self.consumer_key,
            "MPESA_CONSUMER_SECRET": self.consumer_secret,
            "MPESA_PASS_KEY": self.pass_key,
            "MPESA_CALLBACK_URL": self.callback_url,
        }
        return [name for name, value in required.items() if not value]

    @property
    def configured(self) -> bool:
        return not self.missing()


@dataclass(frozen=True)
class StripeSettings:
    secret_key: str = ""
    webhook_secret: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)


@dataclass(frozen=True)
class CompanySettings:
    """Seller details printed on every invoice."""

    name: str = "Brandson Media"
    address: str = "Nairobi, Kenya"
    phone: str = "+254 701 869821"
    email: str = "brandsonmedia@gmail.com"
    website: str = "https://brandsonmedia.co.ke"
    tax_id: str = "PVT-123456789"


@dataclass(frozen=True)
class Settings:
    mpesa: MpesaSettings = field(default_factory=MpesaSettings)
    stripe: StripeSettings = field(default_factory=StripeSettings)
    company: CompanySettings = field(default_factory=CompanySettings)
    currency: str = "KES"
    invoice_due_days: int = 30
    invoice_terms: str = DEFAULT_INVOICE_TERMS
    api_tokens: dict = field(default_factory=dict)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build a Settings snapshot from environment variables."""
    env = os.environ if environ is None else environ
    defaults = CompanySettings()

    mpesa = MpesaSettings(
        consumer_key=env.get("MPESA_CONSUMER_KEY", ""),
        consumer_secret=env.get("MPESA_CONSUMER_SECRET", ""),
        pass_key=env.get("MPESA_PASS_KEY", ""),
        shortcode=env.get("MPESA_SHORTCODE", "174379"),
        callback_url=env.get("MPESA_CALLBACK_URL", ""),
        environment=env.get("MPESA_ENVIRONMENT", "sandbox").lower(),
    )
    stripe_settings = StripeSettings(
        secret_key=env.get("STRIPE_SECRET_KEY", ""),
        webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
    )
    company = CompanySettings(
        name=env.get("COMPANY_NAME", defaults.name),
        address=env.get("COMPANY_ADDRESS", defaults.address),
        phone=env.get("COMPANY_PHONE", defaults.phone),
        email=env.get("COMPANY_EMAIL", defaults.email),
        website=env.get("COMPANY_WEBSITE", defaults.website),
        tax_id=env.get("COMPANY_TAX_ID", defaults.tax_id),
    )

    raw_tokens = env.get("API_TOKENS", "")
    api_tokens = json.loads(raw_tokens) if raw_tokens else {}

    return Settings(
        mpesa=mpesa,
        stripe=stripe_settings,
        company=company,
        currency=env.get("SALES_CURRENCY", "KES"),
        invoice_due_days=int(env.get("INVOICE_DUE_DAYS", "30")),
        invoice_terms=env.get("INVOICE_TERMS", DEFAULT_INVOICE_TERMS),
        api_tokens=api_tokens,
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
