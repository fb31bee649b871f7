"""
PayPal Payment Gateway Integration
Uses the Orders v2 REST API with an OAuth client-credentials token.
"""

import threading
import time
from dataclasses import replace
from decimal import Decimal
from typing import Dict, Any, Optional

import requests

from .base import GatewayHTTPClient
from unipay.payments.config import GatewayConfig
from unipay.payments.exceptions import PaymentGatewayException
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

PAYPAL_SANDBOX_URL = 'https://api-m.sandbox.paypal.com'
PAYPAL_PRODUCTION_URL = 'https://api-m.paypal.com'

# Refresh the token this many seconds before PayPal expires it
TOKEN_EXPIRY_MARGIN = 300

_ORDER_STATUS_MAP = {
    'COMPLETED': PaymentStatus.COMPLETED,
    'VOIDED': PaymentStatus.CANCELED,
    'CREATED': PaymentStatus.PENDING,
    'SAVED': PaymentStatus.PENDING,
    'APPROVED': PaymentStatus.PENDING,
    'PAYER_ACTION_REQUIRED': PaymentStatus.PENDING,
}


class PayPalGateway:
    """PayPal Checkout gateway implementation."""

    def __init__(self, config: GatewayConfig, session: requests.Session):
        self.config = config
        self.http = GatewayHTTPClient(self.get_method_name(), config, session)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = threading.Lock()

    def get_name(self) -> str:
        return 'PayPal'

    def get_method_name(self) -> str:
        return 'paypal'

    def _get_access_token(self, timeout: Optional[float]) -> str:
        with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

        client_id = self.config.api_key or self.config.merchant_id
        result = self.http.request(
            'v1/oauth2/token', 'POST',
            data={'grant_type': 'client_credentials'},
            auth=(client_id, self.config.secret_key),
            timeout=timeout,
        )

        token = result.get('access_token')
        if not token:
            raise PaymentGatewayException(
                "Failed to get PayPal access token",
                method=self.get_method_name(),
                gateway_response=result,
            )

        expires_in = int(result.get('expires_in', 3600))
        with self._token_lock:
            self._access_token = token
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        return token

    def _headers(self, timeout: Optional[float]) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {self._get_access_token(timeout)}",
            'Prefer': 'return=representation',
        }

    def _order_status(self, order: Dict[str, Any]) -> PaymentStatus:
        return _ORDER_STATUS_MAP.get(order.get('status', ''), PaymentStatus.FAILED)

    def _order_amount(self, order: Dict[str, Any]) -> Optional[Decimal]:
        units = order.get('purchase_units') or [{}]
        captures = (units[0].get('payments') or {}).get('captures') or []
        amount = captures[0].get('amount') if captures else units[0].get('amount')
        if not amount or amount.get('value') is None:
            return None
        return Decimal(str(amount['value']))

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        """
        Create a PayPal order and return its approval link.

        Args:
            request: Payment request
            timeout: Per-call timeout in seconds

        Returns:
            PaymentResponse with the payer approval URL
        """
        currency = (request.currency or self.config.currency).upper()
        order_data = {
            'intent': 'CAPTURE',
            'purchase_units': [{
                'reference_id': request.order_id,
                'custom_id': request.order_id,
                'description': request.description or request.order_id,
                'amount': {
                    'currency_code': currency,
                    'value': format_major_units(request.amount, currency),
                },
            }],
            'application_context': {
                'return_url': request.success_url,
                'cancel_url': request.failure_url or request.return_url or request.success_url,
                'user_action': 'PAY_NOW',
                'shipping_preference': 'NO_SHIPPING',
            },
        }

        order = self.http.request('v2/checkout/orders', 'POST', json=order_data,
                                  headers=self._headers(timeout), timeout=timeout)

        approve_url = next(
            (link.get('href') for link in order.get('links', [])
             if link.get('rel') in ('approve', 'payer-action')),
            None,
        )
        if not approve_url or not order.get('id'):
            raise PaymentGatewayException(
                "PayPal did not return an approval link",
                method=self.get_method_name(),
                gateway_response=order,
            )

        return PaymentResponse(
            success=True,
            order_id=request.order_id,
            payment_url=approve_url,
            transaction_id=order['id'],
            message='PayPal order created successfully',
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        """
        Capture an approved order, or report the state of one that is not
        yet approved or already captured.
        """
        order_id = request.transaction_id
        order = self.http.request(f'v2/checkout/orders/{order_id}', 'GET',
                                  headers=self._headers(timeout), timeout=timeout)

        if order.get('status') == 'APPROVED':
            order = self.http.request(f'v2/checkout/orders/{order_id}/capture', 'POST', json={},
                                      headers=self._headers(timeout), timeout=timeout)

        status = self._order_status(order)
        amount = self._order_amount(order)
        units = order.get('purchase_units') or [{}]
        captures = (units[0].get('payments') or {}).get('captures') or []

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=order_id,
            order_id=units[0].get('reference_id') or request.order_id,
            amount=amount,
            paid_amount=amount if status == PaymentStatus.COMPLETED else None,
            metadata={'capture_id': captures[0]['id']} if captures else {},
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        """
        Refund a captured payment.

        Args:
            request: transaction_id must be the capture id reported at verification
            timeout: Per-call timeout in seconds
        """
        body: Dict[str, Any] = {}
        if request.amount is not None:
            body['amount'] = {
                'value': format_major_units(request.amount, self.config.currency),
                'currency_code': self.config.currency.upper(),
            }
        if request.reason:
            body['note_to_payer'] = request.reason

        refund = self.http.request(f'v2/payments/captures/{request.transaction_id}/refund', 'POST',
                                   json=body, headers=self._headers(timeout), timeout=timeout)

        return RefundResponse(
            success=refund.get('status') in ('COMPLETED', 'PENDING'),
            refund_id=refund.get('id'),
            message=f"Refund {str(refund.get('status', '')).lower()}",
        )

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        order = self.http.request(f'v2/checkout/orders/{transaction_id}', 'GET',
                                  headers=self._headers(timeout), timeout=timeout)
        units = order.get('purchase_units') or [{}]
        return StatusResponse(
            status=self._order_status(order),
            transaction_id=transaction_id,
            order_id=units[0].get('reference_id') or '',
            amount=self._order_amount(order),
        )


def create_paypal_gateway(config: GatewayConfig, session: requests.Session) -> PayPalGateway:
    config = replace(
        config,
        base_url=config.base_url or (PAYPAL_SANDBOX_URL if config.sandbox else PAYPAL_PRODUCTION_URL),
        currency=config.currency or 'USD',
    )
    return PayPalGateway(config, session)
