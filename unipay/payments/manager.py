"""
Payment Manager
Dispatches payment operations to live gateway instances and combines the
registry's eligibility policy with what this deployment has configured.
"""

import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter

from .config import GatewayConfig, DEFAULT_GATEWAY_TIMEOUT
from .exceptions import (
    PaymentException,
    PaymentGatewayNotConfiguredException,
    GatewayFactoryNotFoundException,
    NoGatewayAvailableException,
)
from .gateways import PaymentGateway, GatewayFactory
from .models import (
    PaymentRequest,
    PaymentResponse,
    VerificationRequest,
    VerificationResponse,
    RefundRequest,
    RefundResponse,
    StatusResponse,
)
from .registry import GatewayRegistry, Recommendation

logger = logging.getLogger(__name__)

OPERATION_INITIATE = 'initiate'
OPERATION_VERIFY = 'verify'
OPERATION_REFUND = 'refund'
OPERATION_STATUS = 'status'

# Operation name -> gateway method name
OPERATIONS = {
    OPERATION_INITIATE: 'initiate_payment',
    OPERATION_VERIFY: 'verify_payment',
    OPERATION_REFUND: 'refund_payment',
    OPERATION_STATUS: 'get_status',
}


def create_session(pool_connections: int = 10, pool_maxsize: int = 100) -> requests.Session:
    """Create the pooled HTTP session shared by all gateways."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_connections, pool_maxsize=pool_maxsize)
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    return session


class PaymentManager:
    """
    Unified entry point for payment operations.

    Eligibility (the registry) and configuration (the live gateway
    instances) are independent: a method can only be dispatched to once it
    has an instance, and country-aware calls additionally require the
    registry to allow it.
    """

    def __init__(self, registry: Optional[GatewayRegistry] = None,
                 timeout: float = DEFAULT_GATEWAY_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Args:
            registry: Eligibility policy; an empty registry if None
            timeout: Default timeout for gateways whose config has none
            session: Shared HTTP session; a pooled one is created if None
        """
        self.timeout = timeout or DEFAULT_GATEWAY_TIMEOUT
        self.session = session or create_session()
        self._gateways: Dict[str, PaymentGateway] = {}
        self._factories: Dict[str, GatewayFactory] = {}
        self._registry = registry if registry is not None else GatewayRegistry()
        self._lock = threading.Lock()

    # Registration

    def register_factory(self, method: str, factory: GatewayFactory) -> None:
        """Record a constructor for a method without instantiating it."""
        with self._lock:
            self._factories[method] = factory
        logger.debug("Registered gateway factory for %s", method)

    def register_gateway(self, method: str, gateway: PaymentGateway) -> None:
        """Install a pre-built gateway instance, bypassing the factory."""
        with self._lock:
            self._gateways[method] = gateway
        logger.info("Registered gateway instance for %s", method)

    def register_gateway_with_config(self, method: str, config: GatewayConfig) -> PaymentGateway:
        """
        Create a gateway through its factory and install it, replacing any
        previous instance for the method.

        Args:
            method: Payment method name
            config: Gateway configuration

        Returns:
            The new gateway instance

        Raises:
            GatewayFactoryNotFoundException: If no factory is registered
        """
        with self._lock:
            factory = self._factories.get(method)
        if factory is None:
            raise GatewayFactoryNotFoundException(method)

        if config.timeout is None:
            config = replace(config, timeout=self.timeout)

        gateway = factory(config, self.session)

        with self._lock:
            self._gateways[method] = gateway
        logger.info("Instantiated gateway %s (sandbox=%s)", method, config.sandbox)
        return gateway

    def set_registry(self, registry: GatewayRegistry) -> None:
        with self._lock:
            self._registry = registry

    def get_registry(self) -> GatewayRegistry:
        with self._lock:
            return self._registry

    # Lookup

    def get_gateway(self, method: str) -> PaymentGateway:
        """
        Get the live gateway for a method.

        Raises:
            PaymentGatewayNotConfiguredException: If the method has no instance
        """
        with self._lock:
            gateway = self._gateways.get(method)
        if gateway is None:
            raise PaymentGatewayNotConfiguredException(method)
        return gateway

    def has_gateway(self, method: str) -> bool:
        with self._lock:
            return method in self._gateways

    def list_gateways(self) -> List[str]:
        with self._lock:
            return sorted(self._gateways)

    def list_factories(self) -> List[str]:
        with self._lock:
            return sorted(self._factories)

    # Dispatch

    def dispatch(self, method: str, operation: str, *args: Any, **kwargs: Any) -> Any:
        """
        Forward an operation to the gateway for a method.

        Gateway errors propagate unchanged; payment exceptions are tagged
        with the method if the gateway left it empty.

        Args:
            method: Payment method name
            operation: One of 'initiate', 'verify', 'refund', 'status'
            *args, **kwargs: Passed to the gateway operation

        Returns:
            The gateway's result

        Raises:
            ValueError: If the operation is unknown
            PaymentGatewayNotConfiguredException: If the method has no instance
        """
        attr = OPERATIONS.get(operation)
        if attr is None:
            raise ValueError(f"Unsupported payment operation: {operation}")

        gateway = self.get_gateway(method)
        handler: Callable[..., Any] = getattr(gateway, attr)

        try:
            return handler(*args, **kwargs)
        except PaymentException as e:
            if not e.method:
                e.method = method
            logger.warning("%s %s failed: %s", method, operation, e)
            raise

    def initiate_payment(self, method: str, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        return self.dispatch(method, OPERATION_INITIATE, request, timeout=timeout)

    def verify_payment(self, method: str, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        return self.dispatch(method, OPERATION_VERIFY, request, timeout=timeout)

    def refund_payment(self, method: str, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        return self.dispatch(method, OPERATION_REFUND, request, timeout=timeout)

    def get_status(self, method: str, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        return self.dispatch(method, OPERATION_STATUS, transaction_id, timeout=timeout)

    # Country aware

    def get_available_gateways_for_country(self, country: str) -> List[str]:
        """
        Get methods that are both eligible in a country and configured,
        in the registry's priority order.
        """
        eligible = self.get_registry().get_available_gateways(country)
        with self._lock:
            return [method for method in eligible if method in self._gateways]

    def is_gateway_available(self, country: str, method: str) -> bool:
        """Check that a method is eligible in a country and configured."""
        return (
            self.get_registry().is_gateway_available(country, method)
            and self.has_gateway(method)
        )

    def get_recommended_gateway(self, country: str) -> str:
        """
        Get the highest priority usable method for a country.

        Raises:
            NoGatewayAvailableException: If nothing is eligible and configured
        """
        available = self.get_available_gateways_for_country(country)
        if not available:
            raise NoGatewayAvailableException(country)
        return available[0]

    def initiate_payment_for_country(self, country: str, request: PaymentRequest,
                                     timeout: Optional[float] = None) -> PaymentResponse:
        """Initiate a payment with the recommended method for a country."""
        method = self.get_recommended_gateway(country)
        logger.info("Initiating order %s for %s via %s", request.order_id, country, method)
        return self.initiate_payment(method, request, timeout=timeout)

    def initiate_payment_with_method_for_country(self, country: str, method: str,
                                                 request: PaymentRequest,
                                                 timeout: Optional[float] = None) -> PaymentResponse:
        """
        Initiate a payment with a caller-chosen method.

        The method must first be eligible in the country, then configured;
        the first failing check is reported and nothing is dispatched.

        Raises:
            GatewayNotEligibleException: If the registry does not allow the method
            PaymentGatewayNotConfiguredException: If the method has no instance
        """
        self.get_registry().validate_gateway_for_country(country, method)

        if not self.has_gateway(method):
            raise PaymentGatewayNotConfiguredException(method, country=country)

        return self.initiate_payment(method, request, timeout=timeout)

    def get_gateway_recommendations(self, country: str) -> List[Recommendation]:
        """
        Get registry recommendations with ``available`` reflecting whether
        each method is configured in this deployment.
        """
        recommendations = self.get_registry().get_recommendations(country)
        with self._lock:
            configured = set(self._gateways)
        return [replace(rec, available=rec.method in configured) for rec in recommendations]
