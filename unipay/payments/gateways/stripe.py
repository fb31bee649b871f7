"""
Stripe Payment Gateway Integration
Hosted Checkout Sessions through the Stripe SDK.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

import requests
import stripe

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

STRIPE_API_URL = 'https://api.stripe.com'


def build_stripe_client(config: GatewayConfig, session: requests.Session,
                        timeout: Optional[float] = None) -> stripe.StripeClient:
    """
    Build a StripeClient that sends its requests through the shared session.

    Retries are disabled; failures surface to the caller.
    """
    return stripe.StripeClient(
        config.secret_key or config.api_key,
        base_addresses={'api': config.base_url or STRIPE_API_URL},
        http_client=stripe.RequestsClient(
            timeout=timeout or config.timeout or DEFAULT_GATEWAY_TIMEOUT,
            session=session,
        ),
        max_network_retries=0,
    )


class StripeGateway:
    """Stripe Checkout gateway implementation."""

    def __init__(self, config: GatewayConfig, client: stripe.StripeClient,
                 session: Optional[requests.Session] = None):
        self.config = config
        self.client = client
        self.session = session

    def get_name(self) -> str:
        return 'Stripe'

    def get_method_name(self) -> str:
        return 'stripe'

    def _client_for(self, timeout: Optional[float]) -> stripe.StripeClient:
        # The SDK fixes the timeout per http client
        if timeout is None or timeout == self.config.timeout:
            return self.client
        return build_stripe_client(self.config, self.session, timeout)

    def _call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except stripe.APIConnectionError as e:
            cause = e.__cause__ or e.__context__
            if isinstance(cause, requests.exceptions.Timeout):
                raise PaymentTimeoutException(
                    f"stripe request timed out: {str(e)}",
                    method=self.get_method_name(),
                )
            raise PaymentGatewayException(
                f"Payment gateway request failed: {str(e)}",
                method=self.get_method_name(),
                gateway_response={'error': str(e)},
            )
        except stripe.StripeError as e:
            logger.warning("Stripe API error (%s): %s", e.code, e.user_message or str(e))
            raise PaymentGatewayException(
                f"Stripe error: {e.user_message or str(e)}",
                method=self.get_method_name(),
                gateway_response={'error': str(e), 'code': e.code, 'http_status': e.http_status},
            )

    def _retrieve_session(self, session_id: str, timeout: Optional[float]) -> Any:
        client = self._client_for(timeout)
        return self._call(client.v1.checkout.sessions.retrieve, session_id)

    def _session_status(self, session: Any) -> PaymentStatus:
        if getattr(session, 'payment_status', None) in ('paid', 'no_payment_required'):
            return PaymentStatus.COMPLETED
        if getattr(session, 'status', None) == 'expired':
            return PaymentStatus.CANCELED
        return PaymentStatus.PENDING

    def initiate_payment(self, request: PaymentRequest,
                         timeout: Optional[float] = None) -> PaymentResponse:
        currency = (request.currency or self.config.currency).lower()
        params: Dict[str, Any] = {
            'mode': 'payment',
            'success_url': request.success_url,
            'cancel_url': request.failure_url or request.return_url or request.success_url,
            'client_reference_id': request.order_id,
            'line_items': [{
                'quantity': 1,
                'price_data': {
                    'currency': currency,
                    'unit_amount': to_minor_units(request.amount, currency),
                    'product_data': {'name': request.description or request.order_id},
                },
            }],
            'metadata': dict(request.metadata, order_id=request.order_id),
        }
        if request.customer_email:
            params['customer_email'] = request.customer_email

        client = self._client_for(timeout)
        session = self._call(client.v1.checkout.sessions.create, params=params)

        return PaymentResponse(
            success=True,
            order_id=request.order_id,
            payment_url=session.url,
            transaction_id=session.id,
            message='Payment session created successfully',
        )

    def verify_payment(self, request: VerificationRequest,
                       timeout: Optional[float] = None) -> VerificationResponse:
        session = self._retrieve_session(request.transaction_id, timeout)
        status = self._session_status(session)
        currency = getattr(session, 'currency', None) or self.config.currency
        amount = from_minor_units(getattr(session, 'amount_total', None), currency)

        return VerificationResponse(
            success=status == PaymentStatus.COMPLETED,
            status=status,
            transaction_id=request.transaction_id,
            order_id=getattr(session, 'client_reference_id', None) or request.order_id,
            amount=amount,
            paid_amount=amount if status == PaymentStatus.COMPLETED else None,
        )

    def refund_payment(self, request: RefundRequest,
                       timeout: Optional[float] = None) -> RefundResponse:
        """
        Refund a payment. A Checkout Session id is resolved to its
        PaymentIntent first.
        """
        payment_intent = request.transaction_id
        currency = self.config.currency
        if payment_intent.startswith('cs_'):
            session = self._retrieve_session(payment_intent, timeout)
            payment_intent = getattr(session, 'payment_intent', None)
            currency = getattr(session, 'currency', None) or currency
            if not payment_intent:
                raise PaymentGatewayException(
                    "Checkout session has no payment to refund",
                    method=self.get_method_name(),
                    gateway_response={'session': request.transaction_id},
                )

        params: Dict[str, Any] = {'payment_intent': payment_intent}
        if request.amount is not None:
            params['amount'] = to_minor_units(request.amount, currency)
        if request.reason:
            params['metadata'] = {'reason': request.reason}

        client = self._client_for(timeout)
        refund = self._call(client.v1.refunds.create, params=params)

        return RefundResponse(
            success=refund.status in ('succeeded', 'pending'),
            refund_id=refund.id,
            message=f"Refund {refund.status}",
        )

    def get_status(self, transaction_id: str,
                   timeout: Optional[float] = None) -> StatusResponse:
        session = self._retrieve_session(transaction_id, timeout)
        currency = getattr(session, 'currency', None) or self.config.currency
        return StatusResponse(
            status=self._session_status(session),
            transaction_id=transaction_id,
            order_id=getattr(session, 'client_reference_id', None) or '',
            amount=from_minor_units(getattr(session, 'amount_total', None), currency),
        )


def create_stripe_gateway(config: GatewayConfig, session: requests.Session) -> StripeGateway:
    config = replace(
        config,
        base_url=config.base_url or STRIPE_API_URL,
        currency=config.currency or 'USD',
    )
    return StripeGateway(config, build_stripe_client(config, session), session)
