"""
Payment Routes
HTTP endpoints over the payment manager.
"""

from flask import request, jsonify, current_app

from unipay.payments import payment_bp
from unipay.payments.exceptions import (
    PaymentException,
    PaymentValidationException,
    GatewayNotEligibleException,
    PaymentGatewayNotConfiguredException,
    NoGatewayAvailableException,
    PaymentOperationNotSupportedException,
    PaymentGatewayException,
    PaymentTimeoutException,
)
from unipay.payments.models import PaymentRequest, VerificationRequest, RefundRequest
from unipay.payments.regions import get_region, get_region_info
from unipay.payments.utils import (
    format_payment_response,
    generate_payment_reference,
    get_payment_method_display_name,
    parse_amount,
)

# Most specific first
_STATUS_CODES = [
    (PaymentValidationException, 400),
    (GatewayNotEligibleException, 403),
    (NoGatewayAvailableException, 404),
    (PaymentOperationNotSupportedException, 501),
    (PaymentGatewayNotConfiguredException, 503),
    (PaymentTimeoutException, 504),
    (PaymentGatewayException, 502),
]


def get_payment_manager():
    return current_app.extensions['payment_manager']


def _error_response(error: PaymentException):
    status = 500
    for exc_type, code in _STATUS_CODES:
        if isinstance(error, exc_type):
            status = code
            break

    data = {'error_type': type(error).__name__}
    if error.method:
        data['method'] = error.method
    country = getattr(error, 'country', None)
    if country:
        data['country'] = country

    return jsonify(format_payment_response(success=False, message=error.message, data=data)), status


def _get_json():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise PaymentValidationException("Request body must be a JSON object")
    return data


def _require(data, fields):
    missing = [f for f in fields if not data.get(f)]
    if missing:
        raise PaymentValidationException(f"Missing required fields: {', '.join(missing)}")


def _str_field(data, name):
    value = data.get(name)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise PaymentValidationException(f"Field '{name}' must be a string")
    return value


def _dict_field(data, name):
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise PaymentValidationException(f"Field '{name}' must be an object")
    return {str(k): str(v) for k, v in value.items()}


@payment_bp.route('/methods/<country>', methods=['GET'])
def list_methods(country):
    """List the payment methods usable for a country."""
    country = country.upper()
    manager = get_payment_manager()
    methods = manager.get_available_gateways_for_country(country)
    region = get_region(country)
    info = get_region_info(region)

    return jsonify(format_payment_response(
        success=True,
        message=f"{len(methods)} payment method(s) available",
        data={
            'country': country,
            'region': region,
            'default_currency': info.default_currency if info else None,
            'recommended': methods[0] if methods else None,
            'methods': [
                {'method': m, 'name': get_payment_method_display_name(m)}
                for m in methods
            ],
        }
    )), 200


@payment_bp.route('/recommendations/<country>', methods=['GET'])
def list_recommendations(country):
    country = country.upper()
    recommendations = get_payment_manager().get_gateway_recommendations(country)

    return jsonify(format_payment_response(
        success=True,
        message='Gateway recommendations',
        data={
            'country': country,
            'recommendations': [rec.to_dict() for rec in recommendations],
        }
    )), 200


@payment_bp.route('/initiate', methods=['POST'])
def initiate_payment():
    """
    Initiate a payment for a customer's country.

    Expected JSON payload:
    {
        "country": "NP",
        "method": "esewa",            (optional, recommended method if absent)
        "amount": "100.00",
        "order_id": "ORD-1",          (optional, generated if absent)
        "success_url": "https://example.com/success",
        "failure_url": "https://example.com/failure"
    }
    """
    try:
        data = _get_json()
        _require(data, ['country', 'amount'])

        country = _str_field(data, 'country').upper()
        method = _str_field(data, 'method')
        order_id = data.get('order_id')
        if order_id is not None and not isinstance(order_id, (str, int)):
            raise PaymentValidationException("Field 'order_id' must be a string")
        payment_request = PaymentRequest(
            amount=parse_amount(data['amount']),
            order_id=str(order_id or generate_payment_reference(method or country)),
            currency=_str_field(data, 'currency'),
            customer_name=_str_field(data, 'customer_name'),
            customer_email=_str_field(data, 'customer_email'),
            customer_phone=_str_field(data, 'customer_phone'),
            success_url=_str_field(data, 'success_url'),
            failure_url=_str_field(data, 'failure_url'),
            return_url=_str_field(data, 'return_url'),
            webhook_url=_str_field(data, 'webhook_url'),
            description=_str_field(data, 'description'),
            metadata=_dict_field(data, 'metadata'),
        )

        manager = get_payment_manager()
        if method:
            response = manager.initiate_payment_with_method_for_country(country, method, payment_request)
        else:
            response = manager.initiate_payment_for_country(country, payment_request)

        return jsonify(format_payment_response(
            success=response.success,
            message=response.message or 'Payment initiated successfully',
            data={'payment': response.to_dict()}
        )), 200

    except PaymentException as e:
        current_app.logger.warning(f"Payment initiation rejected: {e.message}")
        return _error_response(e)


@payment_bp.route('/verify', methods=['POST'])
def verify_payment():
    try:
        data = _get_json()
        _require(data, ['method'])

        amount = data.get('amount')
        verification = VerificationRequest(
            transaction_id=_str_field(data, 'transaction_id'),
            order_id=_str_field(data, 'order_id'),
            amount=parse_amount(amount) if amount is not None else None,
            raw_data=_dict_field(data, 'raw_data'),
        )
        response = get_payment_manager().verify_payment(_str_field(data, 'method'), verification)

        return jsonify(format_payment_response(
            success=response.success,
            message=response.message or f"Payment {response.status.value}",
            data={'verification': response.to_dict()}
        )), 200

    except PaymentException as e:
        current_app.logger.error(f"Error in verify_payment: {e.message}")
        return _error_response(e)


@payment_bp.route('/refund', methods=['POST'])
def refund_payment():
    try:
        data = _get_json()
        _require(data, ['method', 'transaction_id'])

        amount = data.get('amount')
        refund = RefundRequest(
            transaction_id=_str_field(data, 'transaction_id'),
            amount=parse_amount(amount) if amount is not None else None,
            reason=_str_field(data, 'reason'),
        )
        response = get_payment_manager().refund_payment(_str_field(data, 'method'), refund)

        return jsonify(format_payment_response(
            success=response.success,
            message=response.message or 'Refund processed',
            data={'refund': response.to_dict()}
        )), 200

    except PaymentException as e:
        current_app.logger.error(f"Error in refund_payment: {e.message}")
        return _error_response(e)


@payment_bp.route('/status/<method>/<transaction_id>', methods=['GET'])
def get_payment_status(method, transaction_id):
    try:
        response = get_payment_manager().get_status(method, transaction_id)
        return jsonify(format_payment_response(
            success=True,
            message=f"Payment {response.status.value}",
            data={'status': response.to_dict()}
        )), 200

    except PaymentException as e:
        current_app.logger.error(f"Error in get_payment_status: {e.message}")
        return _error_response(e)
