"""
Payment System Configuration
Per-gateway credentials and settings, read from the environment.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


DEFAULT_GATEWAY_TIMEOUT = 30.0


@dataclass
class GatewayConfig:
    """
    Configuration handed to a gateway factory.

    Field semantics are left to each gateway; an empty base_url or currency
    is replaced by the gateway's own default.
    """
    merchant_id: str = ''
    secret_key: str = ''
    api_key: str = ''
    base_url: str = ''
    timeout: Optional[float] = None
    sandbox: bool = False
    currency: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class PaymentConfig:
    """
    Payment system configuration.
    Gateway credentials are stored in environment variables named
    <METHOD>_MERCHANT_ID, <METHOD>_SECRET_KEY, <METHOD>_API_KEY,
    <METHOD>_BASE_URL, <METHOD>_SANDBOX, <METHOD>_CURRENCY and <METHOD>_TIMEOUT.
    """

    # Comma separated list of methods to instantiate at startup
    ENABLED_PAYMENT_METHODS = os.environ.get(
        'ENABLED_PAYMENT_METHODS', 'esewa,khalti,imepay,connectips,stripe,paypal,razorpay'
    )

    PAYMENT_TIMEOUT = float(os.environ.get('PAYMENT_TIMEOUT', DEFAULT_GATEWAY_TIMEOUT))

    @staticmethod
    def _env_prefix(gateway_name: str) -> str:
        return gateway_name.strip().upper().replace('-', '_')

    @classmethod
    def get_gateway_config(cls, gateway_name: str) -> GatewayConfig:
        """
        Get configuration for a specific payment gateway.

        Args:
            gateway_name: Name of the payment gateway (esewa, khalti, etc.)

        Returns:
            GatewayConfig populated from the environment
        """
        prefix = cls._env_prefix(gateway_name)
        timeout = os.environ.get(f'{prefix}_TIMEOUT')

        return GatewayConfig(
            merchant_id=os.environ.get(f'{prefix}_MERCHANT_ID', ''),
            secret_key=os.environ.get(f'{prefix}_SECRET_KEY', ''),
            api_key=os.environ.get(f'{prefix}_API_KEY', ''),
            base_url=os.environ.get(f'{prefix}_BASE_URL', ''),
            timeout=float(timeout) if timeout else None,
            sandbox=_env_flag(f'{prefix}_SANDBOX'),
            currency=os.environ.get(f'{prefix}_CURRENCY', ''),
        )

    @classmethod
    def is_gateway_enabled(cls, gateway_name: str) -> bool:
        """
        Check if a payment gateway has any credentials configured.

        Args:
            gateway_name: Name of the payment gateway

        Returns:
            True if gateway is enabled, False otherwise
        """
        config = cls.get_gateway_config(gateway_name)
        return bool(config.merchant_id or config.secret_key or config.api_key)

    @classmethod
    def get_enabled_methods(cls) -> List[str]:
        methods = [m.strip().lower() for m in cls.ENABLED_PAYMENT_METHODS.split(',')]
        return [m for m in methods if m]

    @classmethod
    def load_gateway_configs(cls) -> Dict[str, GatewayConfig]:
        """
        Build configs for every enabled method that has credentials.

        Returns:
            Mapping of method name to GatewayConfig
        """
        return {
            method: cls.get_gateway_config(method)
            for method in cls.get_enabled_methods()
            if cls.is_gateway_enabled(method)
        }


# Payment method display names
PAYMENT_METHOD_DISPLAY_NAMES = {
    'esewa': 'eSewa',
    'khalti': 'Khalti',
    'imepay': 'IME Pay',
    'connectips': 'connectIPS',
    'razorpay': 'Razorpay',
    'paytm': 'Paytm',
    'stripe': 'Stripe',
    'paypal': 'PayPal',
}
