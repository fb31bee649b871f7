"""
Payment Models
Provider-neutral request and response types exchanged with gateways.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal
from enum import Enum
from typing import Dict, Any, Optional


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    COMPLETED = 'completed'
    FAILED = 'failed'
    REFUNDED = 'refunded'
    CANCELED = 'canceled'


def _serialize(data: Dict[str, Any]) -> Dict[str, Any]:
    """Make a dataclass dict JSON friendly."""
    result = {}
    for key, value in data.items():
        if isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, PaymentStatus):
            value = value.value
        result[key] = value
    return result


@dataclass
class PaymentRequest:
    """Input for initiating a payment."""
    amount: Decimal
    order_id: str
    currency: str = ''          # empty means the gateway default
    customer_name: str = ''
    customer_email: str = ''
    customer_phone: str = ''
    success_url: str = ''
    failure_url: str = ''
    return_url: str = ''
    webhook_url: str = ''
    description: str = ''
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class PaymentResponse:
    success: bool
    order_id: str
    payment_url: Optional[str] = None
    transaction_id: Optional[str] = None
    message: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class VerificationRequest:
    transaction_id: str = ''
    order_id: str = ''
    amount: Optional[Decimal] = None
    raw_data: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class VerificationResponse:
    success: bool
    status: PaymentStatus
    transaction_id: str = ''
    order_id: str = ''
    amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    message: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class RefundRequest:
    transaction_id: str
    amount: Optional[Decimal] = None  # None means full refund
    reason: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class RefundResponse:
    success: bool
    refund_id: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass
class StatusResponse:
    status: PaymentStatus
    transaction_id: str
    order_id: str = ''
    amount: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))
