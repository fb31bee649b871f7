"""
Pytest configuration and fixtures.
"""
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from unipay import create_app
from unipay.config import TestingConfig
from unipay.payments.manager import PaymentManager
from unipay.payments.models import (
    PaymentRequest,
    PaymentResponse,
    PaymentStatus,
    VerificationResponse,
    RefundResponse,
    StatusResponse,
)
from unipay.payments.registry import GatewayRegistry


def make_spy_gateway(method):
    """Create a mock gateway that records calls and returns canned responses."""
    gateway = Mock(name=f"{method}_gateway")
    gateway.get_name.return_value = method.title()
    gateway.get_method_name.return_value = method
    gateway.initiate_payment.return_value = PaymentResponse(
        success=True,
        order_id='ORD-1',
        payment_url=f'https://pay.example.com/{method}',
        transaction_id=f'{method}-txn-1',
    )
    gateway.verify_payment.return_value = VerificationResponse(
        success=True,
        status=PaymentStatus.COMPLETED,
        transaction_id=f'{method}-txn-1',
        order_id='ORD-1',
        amount=Decimal('100'),
    )
    gateway.refund_payment.return_value = RefundResponse(success=True, refund_id='re_1')
    gateway.get_status.return_value = StatusResponse(
        status=PaymentStatus.COMPLETED,
        transaction_id=f'{method}-txn-1',
    )
    return gateway


@pytest.fixture
def registry():
    """Registry with Nepal wallets, a South Asia method and a global card processor."""
    reg = GatewayRegistry()
    reg.register_country_gateway('NP', 'esewa', 1)
    reg.register_country_gateway('NP', 'khalti', 2)
    reg.register_region_gateway('south-asia', 'regional-pay', 5)
    reg.register_global_gateway('stripe', 10)
    return reg


@pytest.fixture
def mock_session():
    return Mock(spec=requests.Session)


@pytest.fixture
def manager(registry, mock_session):
    return PaymentManager(registry=registry, session=mock_session)


@pytest.fixture
def payment_request():
    return PaymentRequest(
        amount=Decimal('100.00'),
        order_id='ORD-1',
        success_url='https://shop.example.com/success',
        failure_url='https://shop.example.com/failure',
        description='Test order',
    )


@pytest.fixture
def app(manager):
    return create_app(TestingConfig, manager=manager)


@pytest.fixture
def client(app):
    return app.test_client()
