"""
eSewa Payment Gateway Integration
Redirect-based wallet checkout for Nepal.
"""

from dataclasses import replace
from typing import Optional
from urllib.parse import urlencode

import requests

from .base import GatewayHTTPClient
from unipay.payments.config import GatewayConfig
from unipay.payments.exceptions import PaymentOperationNotSupportedException
from unipay.payments.utils import format_major_units
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

ESEWA_SANDBOX_URL = 'https://rc-epay.esewa.com.np'
ESEWA_PRODUCTION_URL = 'https://epay.esewa.com.np'


class EsewaGateway:
    """eSewa payment gateway implementation."""

    def __init__(self, config: GatewayConfig, session: requests.Session):
        self.config = config
        self.http = GatewayHTTPClient(self.get_method_name(), config, session)

    def get_name(self) -> str:
        return 'eSewa'

    def get_method_name(self) -> str:
        return 'esewa'

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        """
        Build the eSewa checkout URL. No network call is needed; the customer
        is redirected to the form with the order parameters.
        """
        amount = format_major_units(request.amount, self.config.currency)
        params = {
            'amt': amount,
            'psc': '0',
            'pdc': '0',
            'txAmt': '0',
            'tAmt': amount,
            'pid': request.order_id,
            'scd': self.config.merchant_id,
            'su': request.success_url,
            'fu': request.failure_url,
        }

        return PaymentResponse(
            success=True,
            order_id=request.order_id,
            payment_url=f"{self.http.url('api/epay/main/v2/form')}?{urlencode(params)}",
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        """
        Verify a payment through the transaction status endpoint.

        Args:
            request: Must carry the eSewa reference id as raw_data['refId']
            timeout: Per-call timeout in seconds

        Returns:
            VerificationResponse
        """
        ref_id = request.raw_data.get('refId', '')
        params = {
            'amt': format_major_units(request.amount, self.config.currency),
            'rid': ref_id,
            'pid': request.order_id,
            'scd': self.config.merchant_id,
        }

        result = self.http.request('api/epay/transaction/status/', 'GET',
                                   params=params, timeout=timeout)

        status = PaymentStatus.COMPLETED if result.get('status') == 'COMPLETE' else PaymentStatus.FAILED

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=ref_id,
            order_id=request.order_id,
            amount=request.amount,
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        raise PaymentOperationNotSupportedException(
            'refund', self.get_method_name(), 'refund not supported by eSewa API'
        )

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        raise PaymentOperationNotSupportedException(
            'status', self.get_method_name(), 'status check requires order details'
        )


def create_esewa_gateway(config: GatewayConfig, session: requests.Session) -> EsewaGateway:
    """Factory: fill in eSewa defaults without touching the caller's config."""
    config = replace(
        config,
        base_url=config.base_url or (ESEWA_SANDBOX_URL if config.sandbox else ESEWA_PRODUCTION_URL),
        currency=config.currency or 'NPR',
    )
    return EsewaGateway(config, session)
