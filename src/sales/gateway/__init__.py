"""Payment gateway factory.

Provides get/set accessors for the two provider bridges:
- Daraja (M-Pesa) and Stripe adapters when credentials are configured
- Fake adapters in development and testing when credentials are missing

In production the real adapters are always used; an adapter without
credentials reports ``configured == False`` and the API refuses to use it.
"""

from sales.config import get_settings
from sales.gateway.fake_adapter import FakeMpesaGateway, FakeStripeGateway
from sales.gateway.mpesa_adapter import DarajaGateway
from sales.gateway.port import CheckoutGateway, MobileMoneyGateway
from sales.gateway.stripe_adapter import StripeGateway
from sales.utils.logging import current_environment

_mpesa_gateway: MobileMoneyGateway | None = None
_stripe_gateway: CheckoutGateway | None = None


def _use_real(configured: bool) -> bool:
    return configured or current_environment() == "production"


def get_mpesa_gateway() -> MobileMoneyGateway:
    global _mpesa_gateway
    if _mpesa_gateway is None:
        settings = get_settings().mpesa
        _mpesa_gateway = DarajaGateway(settings) if _use_real(settings.configured) else FakeMpesaGateway()
    return _mpesa_gateway


def set_mpesa_gateway(gateway: MobileMoneyGateway) -> None:
    """Override the active M-Pesa gateway (useful for tests)."""
    global _mpesa_gateway
    _mpesa_gateway = gateway


def get_stripe_gateway() -> CheckoutGateway:
    global _stripe_gateway
    if _stripe_gateway is None:
        settings = get_settings().stripe
        _stripe_gateway = StripeGateway(settings) if _use_real(settings.configured) else FakeStripeGateway()
    return _stripe_gateway


def set_stripe_gateway(gateway: CheckoutGateway) -> None:
    """Override the active Stripe gateway (useful for tests)."""
    global _stripe_gateway
    _stripe_gateway = gateway


def reset_gateways() -> None:
    """Reset both bridges to their defaults."""
    global _mpesa_gateway, _stripe_gateway
    _mpesa_gateway = None
    _stripe_gateway = None
