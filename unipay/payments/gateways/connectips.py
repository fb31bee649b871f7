"""
connectIPS Payment Gateway Integration
Bank transfer checkout through Nepal Clearing House.
"""

import base64
import hashlib
import hmac
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

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
from unipay.payments.utils import format_major_units

CONNECTIPS_SANDBOX_URL = 'https://uat.connectips.com:7443/connectipswebgw'
CONNECTIPS_PRODUCTION_URL = 'https://www.connectips.com/connectipswebgw'


def _parse_amount(value: Any) -> Optional[Decimal]:
    if value in (None, ''):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class ConnectIPSGateway:
    """connectIPS payment gateway implementation."""

    def __init__(self, config: GatewayConfig, session: requests.Session):
        self.config = config
        self.http = GatewayHTTPClient(self.get_method_name(), config, session)

    def get_name(self) -> str:
        return 'connectIPS'

    def get_method_name(self) -> str:
        return 'connectips'

    def generate_token(self, data: str) -> str:
        signature = hmac.new(
            self.config.secret_key.encode('utf-8'),
            data.encode('utf-8'),
            hashlib.sha512,
        ).digest()
        return base64.b64encode(signature).decode('ascii')

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        amount = format_major_units(request.amount, self.config.currency)
        payload = {
            'MERCHANTID': self.config.merchant_id,
            'APPID': self.config.api_key,
            'REFERENCEID': request.order_id,
            'TXNAMT': amount,
            'REMARKS': request.description,
            'PARTICULARS': request.description,
            'TOKEN': self.generate_token(f"{self.config.merchant_id},{request.order_id},{amount}"),
        }

        result = self.http.request('api/ips/initiate', 'POST', json=payload, timeout=timeout)

        if not result.get('url') or not result.get('token'):
            raise PaymentGatewayException(
                "connectIPS did not return a payment URL",
                method=self.get_method_name(),
                gateway_response=result,
            )

        return PaymentResponse(
            success=result.get('status') == 'success',
            order_id=request.order_id,
            payment_url=result['url'],
            transaction_id=result['token'],
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        """
        Validate a transaction with connectIPS.

        Args:
            request: transaction_id is the token returned at initiation
            timeout: Per-call timeout in seconds

        Returns:
            VerificationResponse
        """
        payload: Dict[str, str] = {
            'MERCHANTID': self.config.merchant_id,
            'APPID': self.config.api_key,
            'TXNID': request.transaction_id,
            'TOKEN': self.generate_token(f"{self.config.merchant_id},{request.transaction_id}"),
        }

        result = self.http.request('api/ips/validate', 'POST', json=payload, timeout=timeout)

        status = PaymentStatus.COMPLETED if result.get('status') == 'SUCCESS' else PaymentStatus.FAILED

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=request.transaction_id,
            order_id=result.get('reference_id') or request.order_id,
            amount=_parse_amount(result.get('amount')),
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        raise PaymentOperationNotSupportedException(
            'refund', self.get_method_name(), 'refund not implemented for connectIPS'
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


def create_connectips_gateway(config: GatewayConfig, session: requests.Session) -> ConnectIPSGateway:
    config = replace(
        config,
        base_url=config.base_url or (CONNECTIPS_SANDBOX_URL if config.sandbox else CONNECTIPS_PRODUCTION_URL),
        currency=config.currency or 'NPR',
    )
    return ConnectIPSGateway(config, session)
