"""
IME Pay Payment Gateway Integration
Redirect-based wallet checkout for Nepal.
"""

import hashlib
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import urlencode

import requests

from .base import GatewayHTTPClient
from unipay.payments.config import GatewayConfig
from unipay.payments.exceptions import PaymentOperationNotSupportedException
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
from unipay.payments.utils import format_major_units

IMEPAY_SANDBOX_URL = 'https://stg.imepay.com.np:7979/api/Web'
IMEPAY_PRODUCTION_URL = 'https://payment.imepay.com.np:7979/api/Web'


class ImePayGateway:
    """IME Pay payment gateway implementation."""

    def __init__(self, config: GatewayConfig, session: requests.Session):
        self.config = config
        self.http = GatewayHTTPClient(self.get_method_name(), config, session)

    def get_name(self) -> str:
        return 'IME Pay'

    def get_method_name(self) -> str:
        return 'imepay'

    def generate_token(self, data: str) -> str:
        """Sign a comma separated parameter string with the merchant secret."""
        digest = hashlib.sha256((data + self.config.secret_key).encode('utf-8'))
        return digest.hexdigest().upper()

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        amount = format_major_units(request.amount, self.config.currency)
        token = self.generate_token(
            f"MerchantCode={self.config.merchant_id},RefId={request.order_id},TranAmount={amount}"
        )
        params = {
            'MerchantCode': self.config.merchant_id,
            'RefId': request.order_id,
            'TranAmount': amount,
            'Method': 'GET',
            'ResponseUrl': request.success_url,
            'CancelUrl': request.failure_url,
            'TokenId': token,
        }

        return PaymentResponse(
            success=True,
            order_id=request.order_id,
            payment_url=f"{self.http.url('Checkout')}?{urlencode(params)}",
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        """
        Reconfirm a payment with IME Pay.

        Args:
            request: raw_data must carry the Msisdn, RefId and TransactionId
                IME Pay posted back to the response URL
            timeout: Per-call timeout in seconds

        Returns:
            VerificationResponse
        """
        msisdn = request.raw_data.get('Msisdn', '')
        ref_id = request.raw_data.get('RefId', '') or request.order_id
        txn_id = request.raw_data.get('TransactionId', '') or request.transaction_id

        payload = {
            'MerchantCode': self.config.merchant_id,
            'RefId': ref_id,
            'TransactionId': txn_id,
            'Msisdn': msisdn,
            'TokenId': self.generate_token(f"Msisdn={msisdn},RefId={ref_id},TransactionId={txn_id}"),
        }

        result = self.http.request('Reconfirm', 'POST', json=payload, timeout=timeout)

        status = PaymentStatus.COMPLETED if str(result.get('ResponseCode')) == '0' else PaymentStatus.FAILED

        amount = None
        if result.get('Amount') not in (None, ''):
            try:
                amount = Decimal(str(result['Amount']))
            except InvalidOperation:
                amount = None

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=txn_id,
            order_id=ref_id,
            amount=amount,
            message=result.get('ResponseDescription'),
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        raise PaymentOperationNotSupportedException(
            'refund', self.get_method_name(), 'refund not implemented for IME Pay'
        )

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        raise PaymentOperationNotSupportedException(
            'status', self.get_method_name(), 'status check requires the customer MSISDN'
        )


def create_imepay_gateway(config: GatewayConfig, session: requests.Session) -> ImePayGateway:
    config = replace(
        config,
        base_url=config.base_url or (IMEPAY_SANDBOX_URL if config.sandbox else IMEPAY_PRODUCTION_URL),
        currency=config.currency or 'NPR',
    )
    return ImePayGateway(config, session)
