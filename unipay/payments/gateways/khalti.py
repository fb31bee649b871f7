"""
Khalti Payment Gateway Integration
"""

from dataclasses import replace
from typing import Dict, Optional

import requests

from .base import GatewayHTTPClient
from unipay.payments.config import GatewayConfig
from unipay.payments.exceptions import (
    PaymentGatewayException,
    PaymentOperationNotSupportedException,
)
from unipay.payments.models import (
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    VerificationRequest,
    VerificationResponse,
    RefundRequest,
    RefundResponse,
    StatusResponse,
)
from unipay.payments.utils import to_minor_units, from_minor_units

KHALTI_SANDBOX_URL = 'https://a.khalti.com/api/v2'
KHALTI_PRODUCTION_URL = 'https://khalti.com/api/v2'

_STATUS_MAP = {
    'completed': PaymentStatus.COMPLETED,
    'pending': PaymentStatus.PENDING,
    'initiated': PaymentStatus.PENDING,
    'refunded': PaymentStatus.REFUNDED,
    'partially refunded': PaymentStatus.REFUNDED,
    'user canceled': PaymentStatus.CANCELED,
}


class KhaltiGateway:
    """Khalti e-payment gateway implementation."""

    def __init__(self, config: GatewayConfig, session: requests.Session):
        self.config = config
        self.http = GatewayHTTPClient(self.get_method_name(), config, session)

    def get_name(self) -> str:
        return 'Khalti'

    def get_method_name(self) -> str:
        return 'khalti'

    def _headers(self) -> Dict[str, str]:
        return {'Authorization': f"Key {self.config.secret_key}"}

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        payload = {
            'return_url': request.success_url,
            'website_url': request.return_url,
            'amount': to_minor_units(request.amount, self.config.currency),
            'purchase_order_id': request.order_id,
            'purchase_order_name': request.description,
            'customer_info': {
                'name': request.customer_name,
                'email': request.customer_email,
                'phone': request.customer_phone,
            },
        }

        result = self.http.request('epayment/initiate/', 'POST', json=payload,
                                   headers=self._headers(), timeout=timeout)

        if not result.get('payment_url') or not result.get('pidx'):
            raise PaymentGatewayException(
                "Khalti did not return a payment URL",
                method=self.get_method_name(),
                gateway_response=result,
            )

        return PaymentResponse(
            success=True,
            order_id=request.order_id,
            payment_url=result['payment_url'],
            transaction_id=result['pidx'],
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        """
        Look up a payment by its pidx.

        Args:
            request: transaction_id must be the pidx returned at initiation
            timeout: Per-call timeout in seconds

        Returns:
            VerificationResponse
        """
        result = self.http.request('epayment/lookup/', 'POST',
                                   json={'pidx': request.transaction_id},
                                   headers=self._headers(), timeout=timeout)

        status = _STATUS_MAP.get(str(result.get('status', '')).lower(), PaymentStatus.FAILED)

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=request.transaction_id,
            order_id=result.get('purchase_order_id') or request.order_id,
            amount=from_minor_units(result.get('total_amount'), self.config.currency),
            fee=from_minor_units(result.get('fee'), self.config.currency),
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        raise PaymentOperationNotSupportedException(
            'refund', self.get_method_name(), 'refund not implemented for Khalti'
        )

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        verification = self.verify_payment(
            VerificationRequest(transaction_id=transaction_id), timeout=timeout
        )
        return StatusResponse(
            status=verification.status,
            transaction_id=verification.transaction_id,
            order_id=verification.order_id,
            amount=verification.amount,
        )


def create_khalti_gateway(config: GatewayConfig, session: requests.Session) -> KhaltiGateway:
    config = replace(
        config,
        base_url=config.base_url or (KHALTI_SANDBOX_URL if config.sandbox else KHALTI_PRODUCTION_URL),
        currency=config.currency or 'NPR',
    )
    return KhaltiGateway(config, session)
