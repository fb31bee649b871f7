"""
Razorpay Payment Gateway Integration
Hosted Payment Links through the Razorpay SDK.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

import razorpay
import requests

from unipay.payments.config import GatewayConfig, DEFAULT_GATEWAY_TIMEOUT
from unipay.payments.exceptions import PaymentGatewayException, PaymentTimeoutException
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

logger = logging.getLogger(__name__)

RAZORPAY_API_URL = 'https://api.razorpay.com'

_LINK_STATUS_MAP = {
    'paid': PaymentStatus.COMPLETED,
    'created': PaymentStatus.PENDING,
    'partially_paid': PaymentStatus.PENDING,
    'cancelled': PaymentStatus.CANCELED,
    'expired': PaymentStatus.CANCELED,
}


class RazorpayGateway:
    """
    Razorpay gateway implementation.

    Payments are collected through Payment Links; the link id is the
    transaction id reported back to callers.
    """

    def __init__(self, config: GatewayConfig, client: razorpay.Client):
        self.config = config
        self.client = client

    def get_name(self) -> str:
        return 'Razorpay'

    def get_method_name(self) -> str:
        return 'razorpay'

    def _call(self, func: Callable[..., Dict[str, Any]], *args: Any,
              timeout: Optional[float] = None) -> Dict[str, Any]:
        if timeout is None:
            timeout = self.config.timeout or DEFAULT_GATEWAY_TIMEOUT
        try:
            return func(*args, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise PaymentTimeoutException(
                f"razorpay request timed out: {str(e)}",
                method=self.get_method_name(),
            )
        except requests.exceptions.RequestException as e:
            raise PaymentGatewayException(
                f"Payment gateway request failed: {str(e)}",
                method=self.get_method_name(),
                gateway_response={'error': str(e)},
            )
        except (razorpay.errors.BadRequestError,
                razorpay.errors.GatewayError,
                razorpay.errors.ServerError) as e:
            logger.warning("Razorpay API error: %s", e)
            raise PaymentGatewayException(
                f"Razorpay error: {str(e)}",
                method=self.get_method_name(),
                gateway_response={'error': str(e)},
            )

    def _link_status(self, link: Dict[str, Any]) -> PaymentStatus:
        return _LINK_STATUS_MAP.get(link.get('status', ''), PaymentStatus.FAILED)

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        """
        Create a Payment Link for the order.

        Args:
            request: Payment request
            timeout: Per-call timeout in seconds

        Returns:
            PaymentResponse with the link's short URL
        """
        currency = (request.currency or self.config.currency).upper()
        data: Dict[str, Any] = {
            'amount': to_minor_units(request.amount, currency),
            'currency': currency,
            'reference_id': request.order_id,
            'description': request.description or request.order_id,
            'callback_url': request.success_url,
            'callback_method': 'get',
            'notes': dict(request.metadata),
        }
        customer = {
            key: value for key, value in (
                ('name', request.customer_name),
                ('email', request.customer_email),
                ('contact', request.customer_phone),
            ) if value
        }
        if customer:
            data['customer'] = customer

        link = self._call(self.client.payment_link.create, data, timeout=timeout)

        return PaymentResponse(
            success=True,
            order_id=request.order_id,
            payment_url=link.get('short_url'),
            transaction_id=link.get('id'),
            message='Payment link created successfully',
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        """
        Verify a payment link callback.

        When the callback parameters are present in raw_data their signature
        is checked before the link is fetched.
        """
        link_id = request.transaction_id or request.raw_data.get('razorpay_payment_link_id', '')
        signature = request.raw_data.get('razorpay_signature')

        if signature:
            try:
                self.client.utility.verify_payment_link_signature({
                    'payment_link_id': link_id,
                    'payment_link_reference_id': request.raw_data.get('razorpay_payment_link_reference_id', ''),
                    'payment_link_status': request.raw_data.get('razorpay_payment_link_status', ''),
                    'razorpay_payment_id': request.raw_data.get('razorpay_payment_id', ''),
                    'razorpay_signature': signature,
                })
            except razorpay.errors.SignatureVerificationError:
                logger.warning("Razorpay signature mismatch for %s", link_id)
                return VerificationResponse(
                    success=False,
                    status=PaymentStatus.FAILED,
                    transaction_id=link_id,
                    order_id=request.order_id,
                    message='Signature verification failed',
                )

        link = self._call(self.client.payment_link.fetch, link_id, timeout=timeout)
        status = self._link_status(link)
        currency = link.get('currency') or self.config.currency

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=link_id,
            order_id=link.get('reference_id') or request.order_id,
            amount=from_minor_units(link.get('amount'), currency),
            paid_amount=from_minor_units(link.get('amount_paid'), currency),
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        """
        Refund a payment. A payment link id is resolved to its captured
        payment first.
        """
        payment_id = request.transaction_id
        if payment_id.startswith('plink_'):
            link = self._call(self.client.payment_link.fetch, payment_id, timeout=timeout)
            captured = [p for p in (link.get('payments') or []) if p.get('status') == 'captured']
            if not captured:
                raise PaymentGatewayException(
                    "Payment link has no captured payment to refund",
                    method=self.get_method_name(),
                    gateway_response=link,
                )
            payment_id = captured[-1]['payment_id']

        data: Dict[str, Any] = {}
        if request.amount is not None:
            data['amount'] = to_minor_units(request.amount, self.config.currency)
        if request.reason:
            data['notes'] = {'reason': request.reason}

        refund = self._call(self.client.payment.refund, payment_id, data, timeout=timeout)

        return RefundResponse(
            success=refund.get('status') in ('processed', 'pending'),
            refund_id=refund.get('id'),
            message=f"Refund {refund.get('status')}",
        )

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        link = self._call(self.client.payment_link.fetch, transaction_id, timeout=timeout)
        currency = link.get('currency') or self.config.currency
        return StatusResponse(
            status=self._link_status(link),
            transaction_id=transaction_id,
            order_id=link.get('reference_id') or '',
            amount=from_minor_units(link.get('amount'), currency),
        )


def create_razorpay_gateway(config: GatewayConfig, session: requests.Session) -> RazorpayGateway:
    config = replace(
        config,
        base_url=config.base_url or RAZORPAY_API_URL,
        currency=config.currency or 'INR',
    )
    client = razorpay.Client(
        session=session,
        auth=(config.api_key or config.merchant_id, config.secret_key),
        base_url=config.base_url,
    )
    return RazorpayGateway(config, client)
