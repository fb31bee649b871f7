"""
Payment System Exceptions
Custom exceptions for gateway selection and payment processing.
"""


class PaymentException(Exception):
    """Base exception for payment-related errors."""

    def __init__(self, message, method=None):
        super().__init__(message)
        self.message = message
        self.method = method


class PaymentGatewayException(PaymentException):
    """Exception raised when a payment gateway returns an error."""

    def __init__(self, message, method=None, gateway_response=None):
        super().__init__(message, method=method)
        self.gateway_response = gateway_response


class PaymentValidationException(PaymentException):
    """Exception raised when payment data validation fails."""
    pass


class PaymentMethodNotSupportedException(PaymentException):
    """Exception raised when an unsupported payment method is used."""
    pass


class GatewayNotEligibleException(PaymentMethodNotSupportedException):
    """Exception raised when a method is not allowed in a country."""

    def __init__(self, country, method):
        super().__init__(
            f"Gateway {method} is not available for country {country}",
            method=method,
        )
        self.country = country


class PaymentGatewayNotConfiguredException(PaymentException):
    """Exception raised when no live gateway instance exists for a method."""

    def __init__(self, method, country=None):
        if country:
            message = f"Gateway {method} is eligible for country {country} but not configured"
        else:
            message = f"Gateway {method} not registered"
        super().__init__(message, method=method)
        self.country = country


class GatewayFactoryNotFoundException(PaymentException):
    """Exception raised when instantiation is attempted without a factory."""

    def __init__(self, method):
        super().__init__(f"No factory registered for method: {method}", method=method)


class NoGatewayAvailableException(PaymentException):
    """Exception raised when no eligible and configured gateway exists for a country."""

    def __init__(self, country):
        super().__init__(f"No payment gateway available for country {country}")
        self.country = country


class PaymentOperationNotSupportedException(PaymentException):
    """Exception raised when a gateway declines an operation by design."""

    def __init__(self, operation, method, message=None):
        super().__init__(
            message or f"{operation} not supported by {method}",
            method=method,
        )
        self.operation = operation


class PaymentTimeoutException(PaymentException):
    """Exception raised when payment processing times out or is cancelled."""
    pass
