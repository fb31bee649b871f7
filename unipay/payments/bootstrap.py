"""
Payment Manager Setup
Helpers that wire built-in gateway factories and configs into a manager.
"""

import logging
from typing import Dict, Mapping, Optional

from .config import GatewayConfig, PaymentConfig, DEFAULT_GATEWAY_TIMEOUT
from .exceptions import PaymentException
from .gateways import GATEWAY_FACTORIES, GatewayFactory
from .manager import PaymentManager
from .registry import GatewayRegistry, default_registry

logger = logging.getLogger(__name__)


def setup_payment_manager(configs: Dict[str, GatewayConfig],
                          registry: Optional[GatewayRegistry] = None,
                          timeout: float = DEFAULT_GATEWAY_TIMEOUT,
                          factories: Optional[Mapping[str, GatewayFactory]] = None) -> PaymentManager:
    """
    Create a payment manager with every built-in factory (plus any extra
    factories) registered and one gateway instantiated per config.

    A method that cannot be instantiated is logged and skipped so the
    remaining gateways are still available.

    Args:
        configs: Mapping of method name to GatewayConfig
        registry: Eligibility policy (empty if None)
        timeout: Default gateway timeout in seconds
        factories: Extra or overriding factories by method name

    Returns:
        Configured PaymentManager
    """
    manager = PaymentManager(registry=registry, timeout=timeout)

    all_factories = dict(GATEWAY_FACTORIES)
    all_factories.update(factories or {})

    for method, factory in all_factories.items():
        manager.register_factory(method, factory)

    for method, config in configs.items():
        try:
            manager.register_gateway_with_config(method, config)
        except PaymentException as e:
            logger.error("Error registering gateway %s: %s", method, e)

    return manager


def setup_payment_manager_with_defaults(configs: Dict[str, GatewayConfig],
                                        timeout: float = DEFAULT_GATEWAY_TIMEOUT,
                                        factories: Optional[Mapping[str, GatewayFactory]] = None) -> PaymentManager:
    """Create a payment manager using the default country/region registry."""
    return setup_payment_manager(configs, registry=default_registry(), timeout=timeout,
                                 factories=factories)


def setup_payment_manager_from_env(use_default_registry: bool = True,
                                   factories: Optional[Mapping[str, GatewayFactory]] = None) -> PaymentManager:
    """
    Create a payment manager from gateway credentials in the environment.

    Args:
        use_default_registry: Use default_registry() instead of an empty one
        factories: Extra or overriding factories by method name
    """
    configs = PaymentConfig.load_gateway_configs()
    logger.info("Loaded gateway configs for: %s", ', '.join(sorted(configs)) or 'none')

    registry = default_registry() if use_default_registry else GatewayRegistry()
    return setup_payment_manager(configs, registry=registry, timeout=PaymentConfig.PAYMENT_TIMEOUT,
                                 factories=factories)
