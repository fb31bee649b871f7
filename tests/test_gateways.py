"""Tests for the built-in provider integrations and the shared HTTP client."""

import base64
import hashlib
import hmac
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import Mock, patch
from urllib.parse import urlparse, parse_qs

import pytest
import razorpay
import requests
import stripe

from unipay.payments.config import GatewayConfig
from unipay.payments.exceptions import (
    PaymentGatewayException,
    PaymentOperationNotSupportedException,
    PaymentTimeoutException,
)
from unipay.payments.gateways import (
    GATEWAY_FACTORIES,
    PaymentGateway,
    GatewayHTTPClient,
    list_gateway_factories,
)
from unipay.payments.gateways.connectips import create_connectips_gateway, CONNECTIPS_SANDBOX_URL
from unipay.payments.gateways.esewa import create_esewa_gateway, ESEWA_SANDBOX_URL
from unipay.payments.gateways.imepay import create_imepay_gateway, IMEPAY_SANDBOX_URL
from unipay.payments.gateways.khalti import create_khalti_gateway, KHALTI_PRODUCTION_URL
from unipay.payments.gateways.paypal import create_paypal_gateway, PAYPAL_SANDBOX_URL
from unipay.payments.gateways.razorpay import RazorpayGateway, create_razorpay_gateway, RAZORPAY_API_URL
from unipay.payments.gateways.stripe import StripeGateway, create_stripe_gateway, STRIPE_API_URL
from unipay.payments.models import (
    PaymentRequest,
    PaymentStatus,
    RefundRequest,
    VerificationRequest,
)


def _response(body=None, status_code=200, text=''):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    if body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


class TestHTTPClient:

    def _client(self, session, **config):
        return GatewayHTTPClient('khalti', GatewayConfig(base_url='https://api.example.com/v2/', **config), session)

    def test_joins_url_and_returns_json(self, mock_session):
        mock_session.request.return_value = _response({'ok': True})
        client = self._client(mock_session, timeout=7)

        assert client.request('/lookup/', 'get', params={'a': 1}) == {'ok': True}
        mock_session.request.assert_called_once_with(
            'GET', 'https://api.example.com/v2/lookup/',
            json=None, data=None, params={'a': 1}, headers=None, auth=None, timeout=7,
        )

    def test_call_timeout_overrides_config(self, mock_session):
        mock_session.request.return_value = _response({})
        self._client(mock_session, timeout=7).request('x', timeout=1.5)
        assert mock_session.request.call_args[1]['timeout'] == 1.5

    def test_default_timeout(self, mock_session):
        mock_session.request.return_value = _response({})
        self._client(mock_session).request('x')
        assert mock_session.request.call_args[1]['timeout'] == 30.0

    def test_timeout_maps_to_payment_timeout(self, mock_session):
        mock_session.request.side_effect = requests.exceptions.ReadTimeout('read timed out')

        with pytest.raises(PaymentTimeoutException) as exc_info:
            self._client(mock_session).request('x')

        assert exc_info.value.method == 'khalti'

    def test_connection_error_maps_to_gateway_error(self, mock_session):
        mock_session.request.side_effect = requests.exceptions.ConnectionError('refused')

        with pytest.raises(PaymentGatewayException) as exc_info:
            self._client(mock_session).request('x')

        assert not isinstance(exc_info.value, PaymentTimeoutException)
        assert exc_info.value.gateway_response == {'error': 'refused'}

    def test_invalid_json(self, mock_session):
        mock_session.request.return_value = _response(None, status_code=502, text='<html>Bad Gateway</html>')

        with pytest.raises(PaymentGatewayException) as exc_info:
            self._client(mock_session).request('x')

        assert exc_info.value.gateway_response == {'raw': '<html>Bad Gateway</html>'}

    def test_error_status(self, mock_session):
        mock_session.request.return_value = _response({'detail': 'Invalid token.'}, status_code=401)

        with pytest.raises(PaymentGatewayException) as exc_info:
            self._client(mock_session).request('x')

        assert 'HTTP 401' in exc_info.value.message
        assert exc_info.value.gateway_response == {'detail': 'Invalid token.'}


class TestEsewa:

    @pytest.fixture
    def gateway(self, mock_session):
        return create_esewa_gateway(GatewayConfig(merchant_id='EPAYTEST', sandbox=True), mock_session)

    def test_factory_defaults(self, mock_session):
        config = GatewayConfig(merchant_id='EPAYTEST', sandbox=True)
        gateway = create_esewa_gateway(config, mock_session)

        assert gateway.config.base_url == ESEWA_SANDBOX_URL
        assert gateway.config.currency == 'NPR'
        assert config.base_url == ''
        assert isinstance(gateway, PaymentGateway)

    def test_initiate_builds_form_url(self, gateway, mock_session, payment_request):
        response = gateway.initiate_payment(payment_request)

        url = urlparse(response.payment_url)
        query = parse_qs(url.query)
        assert response.success
        assert f'{url.scheme}://{url.netloc}' == ESEWA_SANDBOX_URL
        assert url.path == '/api/epay/main/v2/form'
        assert query['amt'] == ['100.00']
        assert query['tAmt'] == ['100.00']
        assert query['pid'] == ['ORD-1']
        assert query['scd'] == ['EPAYTEST']
        assert query['su'] == ['https://shop.example.com/success']
        mock_session.request.assert_not_called()

    def test_verify_complete(self, gateway, mock_session):
        mock_session.request.return_value = _response({'status': 'COMPLETE'})

        result = gateway.verify_payment(VerificationRequest(
            order_id='ORD-1', amount=Decimal('100'), raw_data={'refId': '000AE01'},
        ))

        assert result.success
        assert result.status == PaymentStatus.COMPLETED
        assert result.transaction_id == '000AE01'
        params = mock_session.request.call_args[1]['params']
        assert params == {'amt': '100.00', 'rid': '000AE01', 'pid': 'ORD-1', 'scd': 'EPAYTEST'}

    def test_verify_not_complete(self, gateway, mock_session):
        mock_session.request.return_value = _response({'status': 'PENDING'})

        result = gateway.verify_payment(VerificationRequest(order_id='ORD-1', amount=Decimal('100')))

        assert not result.success
        assert result.status == PaymentStatus.FAILED

    @pytest.mark.parametrize('call', [
        lambda g: g.refund_payment(RefundRequest(transaction_id='000AE01')),
        lambda g: g.get_status('000AE01'),
    ])
    def test_unsupported_operations(self, gateway, call):
        with pytest.raises(PaymentOperationNotSupportedException) as exc_info:
            call(gateway)
        assert exc_info.value.method == 'esewa'


class TestKhalti:

    @pytest.fixture
    def gateway(self, mock_session):
        return create_khalti_gateway(GatewayConfig(secret_key='live_secret'), mock_session)

    def test_factory_defaults(self, gateway):
        assert gateway.config.base_url == KHALTI_PRODUCTION_URL
        assert gateway.config.currency == 'NPR'

    def test_initiate(self, gateway, mock_session, payment_request):
        mock_session.request.return_value = _response({
            'pidx': 'bZQLD9wRVWo4CdESSfuSsB',
            'payment_url': 'https://pay.khalti.com/?pidx=bZQLD9wRVWo4CdESSfuSsB',
        })

        response = gateway.initiate_payment(payment_request, timeout=4)

        assert response.transaction_id == 'bZQLD9wRVWo4CdESSfuSsB'
        assert response.payment_url.startswith('https://pay.khalti.com/')
        args, kwargs = mock_session.request.call_args
        assert args == ('POST', f'{KHALTI_PRODUCTION_URL}/epayment/initiate/')
        assert kwargs['json']['amount'] == 10000
        assert kwargs['headers'] == {'Authorization': 'Key live_secret'}
        assert kwargs['timeout'] == 4

    def test_initiate_rounds_half_up_to_paisa(self, gateway, mock_session):
        mock_session.request.return_value = _response({'pidx': 'abc', 'payment_url': 'https://pay.khalti.com/'})

        gateway.initiate_payment(PaymentRequest(amount=Decimal('10.005'), order_id='ORD-3',
                                                success_url='https://shop.example.com/ok'))

        assert mock_session.request.call_args[1]['json']['amount'] == 1001

    def test_initiate_without_payment_url(self, gateway, mock_session, payment_request):
        mock_session.request.return_value = _response({'pidx': 'abc'})

        with pytest.raises(PaymentGatewayException):
            gateway.initiate_payment(payment_request)

    @pytest.mark.parametrize('remote, expected', [
        ('Completed', PaymentStatus.COMPLETED),
        ('Pending', PaymentStatus.PENDING),
        ('Refunded', PaymentStatus.REFUNDED),
        ('User canceled', PaymentStatus.CANCELED),
        ('Expired', PaymentStatus.FAILED),
    ])
    def test_verify_status_mapping(self, gateway, mock_session, remote, expected):
        mock_session.request.return_value = _response({
            'pidx': 'abc', 'status': remote, 'total_amount': 10000, 'fee': 300,
        })

        result = gateway.verify_payment(VerificationRequest(transaction_id='abc', order_id='ORD-1'))

        assert result.status == expected
        assert result.success == (expected == PaymentStatus.COMPLETED)
        assert result.amount == Decimal('100')
        assert result.fee == Decimal('3')

    def test_get_status_uses_lookup(self, gateway, mock_session):
        mock_session.request.return_value = _response({'status': 'Completed', 'total_amount': 5000})

        status = gateway.get_status('abc')

        assert status.status == PaymentStatus.COMPLETED
        assert status.amount == Decimal('50')
        assert mock_session.request.call_args[1]['json'] == {'pidx': 'abc'}

    def test_refund_unsupported(self, gateway):
        with pytest.raises(PaymentOperationNotSupportedException):
            gateway.refund_payment(RefundRequest(transaction_id='abc'))


class TestImePay:

    @pytest.fixture
    def gateway(self, mock_session):
        config = GatewayConfig(merchant_id='IMEMERCHANT', secret_key='ime_secret', sandbox=True)
        return create_imepay_gateway(config, mock_session)

    def test_factory_defaults(self, gateway):
        assert gateway.config.base_url == IMEPAY_SANDBOX_URL
        assert gateway.config.currency == 'NPR'

    def test_generate_token(self, gateway):
        expected = hashlib.sha256(b'abcime_secret').hexdigest().upper()
        assert gateway.generate_token('abc') == expected

    def test_initiate_builds_checkout_url(self, gateway, mock_session, payment_request):
        response = gateway.initiate_payment(payment_request)

        url = urlparse(response.payment_url)
        query = parse_qs(url.query)
        assert response.success
        assert f'{url.scheme}://{url.netloc}{url.path}' == f'{IMEPAY_SANDBOX_URL}/Checkout'
        assert query['MerchantCode'] == ['IMEMERCHANT']
        assert query['RefId'] == ['ORD-1']
        assert query['TranAmount'] == ['100.00']
        assert query['TokenId'] == [gateway.generate_token(
            'MerchantCode=IMEMERCHANT,RefId=ORD-1,TranAmount=100.00'
        )]
        mock_session.request.assert_not_called()

    @pytest.mark.parametrize('code, expected', [
        ('0', PaymentStatus.COMPLETED),
        ('1', PaymentStatus.FAILED),
    ])
    def test_verify_reconfirm(self, gateway, mock_session, code, expected):
        mock_session.request.return_value = _response({
            'ResponseCode': code, 'ResponseDescription': 'Done', 'Amount': '100.00',
        })

        result = gateway.verify_payment(VerificationRequest(raw_data={
            'Msisdn': '9800000000', 'RefId': 'ORD-1', 'TransactionId': 'IME-77',
        }))

        assert result.status == expected
        assert result.transaction_id == 'IME-77'
        assert result.order_id == 'ORD-1'
        assert result.amount == Decimal('100.00')
        assert result.message == 'Done'
        args, kwargs = mock_session.request.call_args
        assert args == ('POST', f'{IMEPAY_SANDBOX_URL}/Reconfirm')
        assert kwargs['json']['Msisdn'] == '9800000000'

    @pytest.mark.parametrize('call', [
        lambda g: g.refund_payment(RefundRequest(transaction_id='IME-77')),
        lambda g: g.get_status('IME-77'),
    ])
    def test_unsupported_operations(self, gateway, call):
        with pytest.raises(PaymentOperationNotSupportedException):
            call(gateway)


class TestConnectIPS:

    @pytest.fixture
    def gateway(self, mock_session):
        config = GatewayConfig(merchant_id='101', api_key='APP-1', secret_key='cips_secret', sandbox=True)
        return create_connectips_gateway(config, mock_session)

    def _token(self, data):
        digest = hmac.new(b'cips_secret', data.encode('utf-8'), hashlib.sha512).digest()
        return base64.b64encode(digest).decode('ascii')

    def test_initiate(self, gateway, mock_session, payment_request):
        mock_session.request.return_value = _response({
            'status': 'success', 'url': 'https://uat.connectips.com/pay/tok-1', 'token': 'tok-1',
        })

        response = gateway.initiate_payment(payment_request)

        assert response.success
        assert response.transaction_id == 'tok-1'
        args, kwargs = mock_session.request.call_args
        assert args == ('POST', f'{CONNECTIPS_SANDBOX_URL}/api/ips/initiate')
        assert kwargs['json']['TXNAMT'] == '100.00'
        assert kwargs['json']['TOKEN'] == self._token('101,ORD-1,100.00')

    def test_initiate_without_url(self, gateway, mock_session, payment_request):
        mock_session.request.return_value = _response({'status': 'failed'})

        with pytest.raises(PaymentGatewayException):
            gateway.initiate_payment(payment_request)

    def test_status_uses_validate(self, gateway, mock_session):
        mock_session.request.return_value = _response({
            'status': 'SUCCESS', 'reference_id': 'ORD-1', 'amount': '100.00',
        })

        status = gateway.get_status('tok-1')

        assert status.status == PaymentStatus.COMPLETED
        assert status.order_id == 'ORD-1'
        assert status.amount == Decimal('100.00')
        kwargs = mock_session.request.call_args[1]
        assert kwargs['json']['TOKEN'] == self._token('101,tok-1')

    def test_refund_unsupported(self, gateway):
        with pytest.raises(PaymentOperationNotSupportedException):
            gateway.refund_payment(RefundRequest(transaction_id='tok-1'))


class TestPayPal:

    TOKEN = {'access_token': 'A21AA', 'expires_in': 32400}

    @pytest.fixture
    def gateway(self, mock_session):
        config = GatewayConfig(api_key='client-id', secret_key='client-secret', sandbox=True)
        return create_paypal_gateway(config, mock_session)

    def _order(self, status='CREATED'):
        return {
            'id': '5O190127TN364715T',
            'status': status,
            'links': [{'rel': 'approve', 'href': 'https://www.sandbox.paypal.com/checkoutnow?token=5O19'}],
            'purchase_units': [{'reference_id': 'ORD-1', 'amount': {'currency_code': 'USD', 'value': '100.00'}}],
        }

    def test_initiate_fetches_token_and_creates_order(self, gateway, mock_session, payment_request):
        mock_session.request.side_effect = [_response(self.TOKEN), _response(self._order())]

        response = gateway.initiate_payment(payment_request)

        assert response.transaction_id == '5O190127TN364715T'
        assert response.payment_url.startswith('https://www.sandbox.paypal.com/checkoutnow')
        token_call, order_call = mock_session.request.call_args_list
        assert token_call[0] == ('POST', f'{PAYPAL_SANDBOX_URL}/v1/oauth2/token')
        assert token_call[1]['auth'] == ('client-id', 'client-secret')
        assert token_call[1]['data'] == {'grant_type': 'client_credentials'}
        assert order_call[0] == ('POST', f'{PAYPAL_SANDBOX_URL}/v2/checkout/orders')
        assert order_call[1]['headers']['Authorization'] == 'Bearer A21AA'
        assert order_call[1]['json']['purchase_units'][0]['amount'] == {'currency_code': 'USD', 'value': '100.00'}

    def test_token_is_cached(self, gateway, mock_session, payment_request):
        mock_session.request.side_effect = [
            _response(self.TOKEN), _response(self._order()), _response(self._order()),
        ]

        gateway.initiate_payment(payment_request)
        gateway.initiate_payment(payment_request)

        assert mock_session.request.call_count == 3

    def test_initiate_without_approve_link(self, gateway, mock_session, payment_request):
        order = dict(self._order(), links=[])
        mock_session.request.side_effect = [_response(self.TOKEN), _response(order)]

        with pytest.raises(PaymentGatewayException):
            gateway.initiate_payment(payment_request)

    def test_verify_captures_approved_order(self, gateway, mock_session):
        captured = self._order('COMPLETED')
        captured['purchase_units'][0]['payments'] = {
            'captures': [{'id': '3C679366HH908993F', 'amount': {'currency_code': 'USD', 'value': '100.00'}}],
        }
        mock_session.request.side_effect = [
            _response(self.TOKEN), _response(self._order('APPROVED')), _response(captured),
        ]

        result = gateway.verify_payment(VerificationRequest(transaction_id='5O190127TN364715T'))

        assert result.success
        assert result.status == PaymentStatus.COMPLETED
        assert result.paid_amount == Decimal('100.00')
        assert result.metadata == {'capture_id': '3C679366HH908993F'}
        assert mock_session.request.call_args[0] == (
            'POST', f'{PAYPAL_SANDBOX_URL}/v2/checkout/orders/5O190127TN364715T/capture',
        )

    def test_verify_unapproved_order_is_pending(self, gateway, mock_session):
        mock_session.request.side_effect = [_response(self.TOKEN), _response(self._order('CREATED'))]

        result = gateway.verify_payment(VerificationRequest(transaction_id='5O190127TN364715T'))

        assert result.status == PaymentStatus.PENDING
        assert mock_session.request.call_count == 2

    def test_refund_capture(self, gateway, mock_session):
        mock_session.request.side_effect = [
            _response(self.TOKEN), _response({'id': '1JU08902781691411', 'status': 'COMPLETED'}),
        ]

        result = gateway.refund_payment(RefundRequest(
            transaction_id='3C679366HH908993F', amount=Decimal('10'), reason='Damaged item',
        ))

        assert result.success
        assert result.refund_id == '1JU08902781691411'
        args, kwargs = mock_session.request.call_args
        assert args == ('POST', f'{PAYPAL_SANDBOX_URL}/v2/payments/captures/3C679366HH908993F/refund')
        assert kwargs['json'] == {
            'amount': {'value': '10.00', 'currency_code': 'USD'},
            'note_to_payer': 'Damaged item',
        }


class TestRazorpay:

    @pytest.fixture
    def client(self):
        return Mock()

    @pytest.fixture
    def gateway(self, client):
        config = GatewayConfig(api_key='rzp_test_key', secret_key='rzp_secret', currency='INR', timeout=30)
        return RazorpayGateway(config, client)

    def test_factory_passes_shared_session(self, mock_session):
        with patch('razorpay.Client') as mock_client:
            gateway = create_razorpay_gateway(GatewayConfig(api_key='rzp_test_key', secret_key='rzp_secret'),
                                              mock_session)

        mock_client.assert_called_once_with(
            session=mock_session, auth=('rzp_test_key', 'rzp_secret'), base_url=RAZORPAY_API_URL,
        )
        assert gateway.client is mock_client.return_value
        assert gateway.config.currency == 'INR'

    def test_initiate_creates_payment_link(self, gateway, client, payment_request):
        client.payment_link.create.return_value = {
            'id': 'plink_ExjpAUN3gVHrPJ', 'short_url': 'https://rzp.io/i/nxrHnLJ',
        }
        payment_request.customer_email = 'buyer@example.com'

        response = gateway.initiate_payment(payment_request, timeout=5)

        assert response.transaction_id == 'plink_ExjpAUN3gVHrPJ'
        assert response.payment_url == 'https://rzp.io/i/nxrHnLJ'
        args, kwargs = client.payment_link.create.call_args
        assert args[0]['amount'] == 10000
        assert args[0]['currency'] == 'INR'
        assert args[0]['reference_id'] == 'ORD-1'
        assert args[0]['customer'] == {'email': 'buyer@example.com'}
        assert kwargs == {'timeout': 5}

    @pytest.mark.parametrize('remote, expected', [
        ('paid', PaymentStatus.COMPLETED),
        ('created', PaymentStatus.PENDING),
        ('expired', PaymentStatus.CANCELED),
        ('unknown', PaymentStatus.FAILED),
    ])
    def test_verify_status_mapping(self, gateway, client, remote, expected):
        client.payment_link.fetch.return_value = {
            'status': remote, 'amount': 10000, 'amount_paid': 10000, 'currency': 'INR', 'reference_id': 'ORD-1',
        }

        result = gateway.verify_payment(VerificationRequest(transaction_id='plink_1'))

        assert result.status == expected
        assert result.order_id == 'ORD-1'
        assert result.amount == Decimal('100')
        client.payment_link.fetch.assert_called_once_with('plink_1', timeout=30)

    def test_verify_signature_mismatch(self, gateway, client):
        client.utility.verify_payment_link_signature.side_effect = razorpay.errors.SignatureVerificationError(
            'Razorpay Signature Verification Failed'
        )

        result = gateway.verify_payment(VerificationRequest(transaction_id='plink_1', raw_data={
            'razorpay_payment_id': 'pay_1', 'razorpay_signature': 'bad',
        }))

        assert not result.success
        assert result.status == PaymentStatus.FAILED
        assert result.message == 'Signature verification failed'
        client.payment_link.fetch.assert_not_called()

    def test_refund_resolves_payment_link(self, gateway, client):
        client.payment_link.fetch.return_value = {
            'payments': [{'payment_id': 'pay_29QQoUBi66xm2f', 'status': 'captured'}],
        }
        client.payment.refund.return_value = {'id': 'rfnd_1', 'status': 'processed'}

        result = gateway.refund_payment(RefundRequest(
            transaction_id='plink_1', amount=Decimal('25.50'), reason='duplicate',
        ))

        assert result.success
        assert result.refund_id == 'rfnd_1'
        client.payment.refund.assert_called_once_with(
            'pay_29QQoUBi66xm2f', {'amount': 2550, 'notes': {'reason': 'duplicate'}}, timeout=30,
        )

    def test_refund_without_captured_payment(self, gateway, client):
        client.payment_link.fetch.return_value = {'payments': []}

        with pytest.raises(PaymentGatewayException):
            gateway.refund_payment(RefundRequest(transaction_id='plink_1'))

    def test_api_error_maps_to_gateway_error(self, gateway, client):
        client.payment_link.fetch.side_effect = razorpay.errors.BadRequestError('The id provided does not exist')

        with pytest.raises(PaymentGatewayException) as exc_info:
            gateway.get_status('plink_missing')

        assert exc_info.value.method == 'razorpay'
        assert exc_info.value.gateway_response == {'error': 'The id provided does not exist'}

    def test_timeout_maps_to_payment_timeout(self, gateway, client):
        client.payment_link.fetch.side_effect = requests.exceptions.ReadTimeout('read timed out')

        with pytest.raises(PaymentTimeoutException):
            gateway.get_status('plink_1')


class TestStripe:

    @pytest.fixture
    def client(self):
        return Mock()

    @pytest.fixture
    def gateway(self, client, mock_session):
        config = GatewayConfig(secret_key='sk_test_123', currency='USD', timeout=30)
        return StripeGateway(config, client, mock_session)

    def test_factory_builds_client_on_shared_session(self, mock_session):
        with patch('stripe.RequestsClient') as requests_client, patch('stripe.StripeClient') as stripe_client:
            gateway = create_stripe_gateway(GatewayConfig(secret_key='sk_test_123', timeout=12), mock_session)

        requests_client.assert_called_once_with(timeout=12, session=mock_session)
        stripe_client.assert_called_once_with(
            'sk_test_123',
            base_addresses={'api': STRIPE_API_URL},
            http_client=requests_client.return_value,
            max_network_retries=0,
        )
        assert gateway.client is stripe_client.return_value
        assert gateway.config.currency == 'USD'

    def test_initiate_creates_checkout_session(self, gateway, client, payment_request):
        client.v1.checkout.sessions.create.return_value = SimpleNamespace(
            id='cs_test_1', url='https://checkout.stripe.com/c/pay/cs_test_1',
        )

        response = gateway.initiate_payment(payment_request)

        assert response.transaction_id == 'cs_test_1'
        assert response.payment_url == 'https://checkout.stripe.com/c/pay/cs_test_1'
        params = client.v1.checkout.sessions.create.call_args[1]['params']
        assert params['client_reference_id'] == 'ORD-1'
        assert params['line_items'][0]['price_data']['unit_amount'] == 10000
        assert params['line_items'][0]['price_data']['currency'] == 'usd'
        assert params['metadata']['order_id'] == 'ORD-1'

    def test_zero_decimal_currency(self, gateway, client):
        client.v1.checkout.sessions.create.return_value = SimpleNamespace(id='cs_test_2', url='https://x')

        gateway.initiate_payment(PaymentRequest(amount=Decimal('500'), order_id='ORD-2', currency='JPY',
                                                success_url='https://shop.example.com/ok'))

        params = client.v1.checkout.sessions.create.call_args[1]['params']
        assert params['line_items'][0]['price_data']['unit_amount'] == 500

    def test_unit_amount_rounds_half_up(self, gateway, client):
        client.v1.checkout.sessions.create.return_value = SimpleNamespace(id='cs_test_3', url='https://x')

        gateway.initiate_payment(PaymentRequest(amount=Decimal('19.995'), order_id='ORD-3',
                                                success_url='https://shop.example.com/ok'))

        params = client.v1.checkout.sessions.create.call_args[1]['params']
        assert params['line_items'][0]['price_data']['unit_amount'] == 2000

    def test_call_timeout_builds_transient_client(self, gateway, client, mock_session, payment_request):
        with patch('unipay.payments.gateways.stripe.build_stripe_client') as build:
            build.return_value.v1.checkout.sessions.create.return_value = SimpleNamespace(id='cs_1', url='u')
            gateway.initiate_payment(payment_request, timeout=2)

        build.assert_called_once_with(gateway.config, mock_session, 2)
        client.v1.checkout.sessions.create.assert_not_called()

    @pytest.mark.parametrize('session, expected', [
        ({'payment_status': 'paid', 'status': 'complete'}, PaymentStatus.COMPLETED),
        ({'payment_status': 'unpaid', 'status': 'open'}, PaymentStatus.PENDING),
        ({'payment_status': 'unpaid', 'status': 'expired'}, PaymentStatus.CANCELED),
    ])
    def test_verify(self, gateway, client, session, expected):
        client.v1.checkout.sessions.retrieve.return_value = SimpleNamespace(
            amount_total=2599, currency='usd', client_reference_id='ORD-9', **session
        )

        result = gateway.verify_payment(VerificationRequest(transaction_id='cs_test_1'))

        assert result.status == expected
        assert result.order_id == 'ORD-9'
        assert result.amount == Decimal('25.99')
        client.v1.checkout.sessions.retrieve.assert_called_once_with('cs_test_1')

    def test_refund_resolves_checkout_session(self, gateway, client):
        client.v1.checkout.sessions.retrieve.return_value = SimpleNamespace(
            id='cs_test_1', payment_intent='pi_1', currency='usd',
        )
        client.v1.refunds.create.return_value = SimpleNamespace(id='re_1', status='succeeded')

        result = gateway.refund_payment(RefundRequest(transaction_id='cs_test_1', amount=Decimal('10'),
                                                      reason='requested_by_customer'))

        assert result.success
        assert result.refund_id == 're_1'
        client.v1.refunds.create.assert_called_once_with(params={
            'payment_intent': 'pi_1',
            'amount': 1000,
            'metadata': {'reason': 'requested_by_customer'},
        })

    def test_refund_unpaid_session(self, gateway, client):
        client.v1.checkout.sessions.retrieve.return_value = SimpleNamespace(id='cs_test_1', payment_intent=None)

        with pytest.raises(PaymentGatewayException):
            gateway.refund_payment(RefundRequest(transaction_id='cs_test_1'))

    def test_status(self, gateway, client):
        client.v1.checkout.sessions.retrieve.return_value = SimpleNamespace(payment_status='paid', amount_total=100)

        status = gateway.get_status('cs_test_1')

        assert status.status == PaymentStatus.COMPLETED
        assert status.amount == Decimal('1')

    def test_connection_timeout_maps_to_payment_timeout(self, gateway, client):
        def timed_out(*args, **kwargs):
            try:
                raise requests.exceptions.ReadTimeout('read timed out')
            except requests.exceptions.ReadTimeout:
                raise stripe.APIConnectionError('Request to Stripe timed out')

        client.v1.checkout.sessions.retrieve.side_effect = timed_out

        with pytest.raises(PaymentTimeoutException) as exc_info:
            gateway.get_status('cs_test_1')

        assert exc_info.value.method == 'stripe'

    def test_connection_error_maps_to_gateway_error(self, gateway, client):
        client.v1.checkout.sessions.retrieve.side_effect = stripe.APIConnectionError('Connection refused')

        with pytest.raises(PaymentGatewayException) as exc_info:
            gateway.get_status('cs_test_1')

        assert not isinstance(exc_info.value, PaymentTimeoutException)

    def test_api_error_maps_to_gateway_error(self, gateway, client):
        client.v1.checkout.sessions.retrieve.side_effect = stripe.InvalidRequestError(
            'No such checkout.session: cs_missing', 'id', code='resource_missing', http_status=404,
        )

        with pytest.raises(PaymentGatewayException) as exc_info:
            gateway.get_status('cs_missing')

        assert exc_info.value.gateway_response['code'] == 'resource_missing'
        assert exc_info.value.gateway_response['http_status'] == 404


class TestFactoryTable:

    def test_builtin_factories(self):
        assert list_gateway_factories() == [
            'connectips', 'esewa', 'imepay', 'khalti', 'paypal', 'razorpay', 'stripe',
        ]

    def test_builtin_table_is_read_only(self):
        with pytest.raises(TypeError):
            GATEWAY_FACTORIES['paytm'] = Mock()

        assert 'paytm' not in GATEWAY_FACTORIES

    @pytest.mark.parametrize('method', ['connectips', 'esewa', 'imepay', 'khalti', 'paypal'])
    def test_http_factories_satisfy_protocol(self, method, mock_session):
        gateway = GATEWAY_FACTORIES[method](GatewayConfig(sandbox=True), mock_session)

        assert isinstance(gateway, PaymentGateway)
        assert gateway.get_method_name() == method
