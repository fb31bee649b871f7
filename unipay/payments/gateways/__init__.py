"""
Payment Gateway Integrations
All payment gateway implementations are in this package.
"""

from types import MappingProxyType
from typing import Callable, List, Mapping

import requests

from unipay.payments.config import GatewayConfig
from .base import PaymentGateway, GatewayHTTPClient
from .connectips import ConnectIPSGateway, create_connectips_gateway
from .esewa import EsewaGateway, create_esewa_gateway
from .imepay import ImePayGateway, create_imepay_gateway
from .khalti import KhaltiGateway, create_khalti_gateway
from .paypal import PayPalGateway, create_paypal_gateway
from .razorpay import RazorpayGateway, create_razorpay_gateway
from .stripe import StripeGateway, create_stripe_gateway

__all__ = [
    'PaymentGateway',
    'GatewayHTTPClient',
    'GatewayFactory',
    'ConnectIPSGateway',
    'EsewaGateway',
    'ImePayGateway',
    'KhaltiGateway',
    'PayPalGateway',
    'RazorpayGateway',
    'StripeGateway',
    'GATEWAY_FACTORIES',
    'list_gateway_factories',
]

# A factory builds a live gateway from its config and the shared session
GatewayFactory = Callable[[GatewayConfig, requests.Session], PaymentGateway]

# Built-in factories, read-only. Custom factories are passed to
# setup_payment_manager(factories=...) or PaymentManager.register_factory.
GATEWAY_FACTORIES: Mapping[str, GatewayFactory] = MappingProxyType({
    'esewa': create_esewa_gateway,
    'khalti': create_khalti_gateway,
    'imepay': create_imepay_gateway,
    'connectips': create_connectips_gateway,
    'stripe': create_stripe_gateway,
    'paypal': create_paypal_gateway,
    'razorpay': create_razorpay_gateway,
})


def list_gateway_factories() -> List[str]:
    return sorted(GATEWAY_FACTORIES)
