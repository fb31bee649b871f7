"""
Payment Gateway Contract
The interface every provider integration satisfies, and the HTTP helper
providers use to talk to their APIs.
"""

import logging
from typing import Dict, Any, Optional, Protocol, Tuple, runtime_checkable

import requests

from unipay.payments.config import GatewayConfig, DEFAULT_GATEWAY_TIMEOUT
from unipay.payments.exceptions import PaymentGatewayException, PaymentTimeoutException
from unipay.payments.models import (
    PaymentRequest,
    PaymentResponse,
    VerificationRequest,
    VerificationResponse,
    RefundRequest,
    RefundResponse,
    StatusResponse,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class PaymentGateway(Protocol):
    """
    Capability contract for one payment method.

    Every operation accepts an optional timeout in seconds which bounds the
    underlying network call. A gateway that does not support an operation
    raises PaymentOperationNotSupportedException.
    """

    def get_name(self) -> str:
        """Human readable provider name."""
        ...

    def get_method_name(self) -> str:
        """Method identifier the gateway is registered under."""
        ...

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        ...

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        ...

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        ...

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        ...


class GatewayHTTPClient:
    """
    Thin wrapper over the shared requests session.

    Transport timeouts become PaymentTimeoutException; every other transport
    or decoding failure becomes PaymentGatewayException tagged with the method.
    """

    def __init__(self, method: str, config: GatewayConfig, session: requests.Session):
        self.method = method
        self.config = config
        self.session = session

    def _timeout(self, timeout: Optional[float]) -> float:
        if timeout is not None:
            return timeout
        if self.config.timeout is not None:
            return self.config.timeout
        return DEFAULT_GATEWAY_TIMEOUT

    def url(self, endpoint: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def request(self, endpoint: str, method: str = 'POST',
                json: Optional[Dict[str, Any]] = None,
                data: Optional[Dict[str, Any]] = None,
                params: Optional[Dict[str, Any]] = None,
                headers: Optional[Dict[str, str]] = None,
                auth: Optional[Tuple[str, str]] = None,
                timeout: Optional[float] = None) -> Dict[str, Any]:
        """
        Make HTTP request to the payment gateway API.

        Args:
            endpoint: API endpoint, relative to the configured base URL
            method: HTTP method (GET, POST, etc.)
            json: JSON body
            data: Form-encoded body
            params: Query string parameters
            headers: Extra request headers
            auth: Basic auth credentials
            timeout: Per-call timeout in seconds

        Returns:
            Decoded JSON response

        Raises:
            PaymentTimeoutException: If the call timed out
            PaymentGatewayException: If the request or decoding failed
        """
        url = self.url(endpoint)

        try:
            response = self.session.request(
                method.upper(),
                url,
                json=json,
                data=data,
                params=params,
                headers=headers,
                auth=auth,
                timeout=self._timeout(timeout),
            )
        except requests.exceptions.Timeout as e:
            logger.warning("%s request to %s timed out", self.method, endpoint)
            raise PaymentTimeoutException(
                f"{self.method} request timed out: {str(e)}",
                method=self.method,
            )
        except requests.exceptions.RequestException as e:
            logger.error("%s request to %s failed: %s", self.method, endpoint, e)
            raise PaymentGatewayException(
                f"Payment gateway request failed: {str(e)}",
                method=self.method,
                gateway_response={'error': str(e)},
            )

        try:
            body = response.json()
        except ValueError:
            raise PaymentGatewayException(
                f"Invalid response from {self.method} (HTTP {response.status_code})",
                method=self.method,
                gateway_response={'raw': response.text},
            )

        if not response.ok:
            raise PaymentGatewayException(
                f"{self.method} error (HTTP {response.status_code})",
                method=self.method,
                gateway_response=body,
            )

        return body
