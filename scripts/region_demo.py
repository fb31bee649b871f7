"""
Region-aware gateway selection demo
Shows which gateways each country can use with the default registry.
"""
import sys
import os
from decimal import Decimal

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unipay.payments import regions
from unipay.payments.bootstrap import setup_payment_manager_with_defaults
from unipay.payments.config import GatewayConfig
from unipay.payments.exceptions import PaymentException
from unipay.payments.models import PaymentRequest


def build_manager():
    configs = {
        'esewa': GatewayConfig(merchant_id='EPAYTEST', secret_key='8gBm/:&EnhH.1/q', sandbox=True),
        'khalti': GatewayConfig(secret_key='test_secret_key_xxx', sandbox=True),
        'stripe': GatewayConfig(secret_key='sk_test_xxx', sandbox=True),
    }
    return setup_payment_manager_with_defaults(configs)


def show_available_gateways(manager):
    print("\n1. Available gateways by country")
    for country in (regions.COUNTRY_NEPAL, regions.COUNTRY_INDIA, regions.COUNTRY_USA,
                    regions.COUNTRY_CANADA, regions.COUNTRY_UK, regions.COUNTRY_GERMANY):
        methods = manager.get_available_gateways_for_country(country)
        print(f"   {country:<4} ({regions.get_region(country)}) -> {methods}")


def show_availability_checks(manager):
    print("\n2. Availability checks")
    cases = [
        (regions.COUNTRY_NEPAL, 'esewa', True),
        (regions.COUNTRY_NEPAL, 'khalti', True),
        (regions.COUNTRY_NEPAL, 'stripe', False),
        (regions.COUNTRY_INDIA, 'esewa', False),
        (regions.COUNTRY_USA, 'stripe', True),
        (regions.COUNTRY_USA, 'esewa', False),
    ]
    for country, method, expected in cases:
        available = manager.is_gateway_available(country, method)
        mark = "✓" if available == expected else "✗ MISMATCH"
        print(f"   {country} + {method} = {available} {mark}")


def show_recommendations(manager):
    print("\n3. Recommendations")
    for country in (regions.COUNTRY_NEPAL, regions.COUNTRY_USA):
        print(f"   {country}:")
        for rec in manager.get_gateway_recommendations(country):
            status = "configured" if rec.available else "not configured"
            tag = " *" if rec.recommended else ""
            print(f"     {rec.priority}. {rec.method} ({rec.scope}, {status}){tag}")


def show_checkout(manager):
    print("\n4. Checkout per customer")
    customers = [
        ("Ram Sharma", regions.COUNTRY_NEPAL, Decimal('1000'), 'NPR'),
        ("Raj Patel", regions.COUNTRY_INDIA, Decimal('500'), 'INR'),
        ("John Smith", regions.COUNTRY_USA, Decimal('100'), 'USD'),
    ]
    for name, country, amount, currency in customers:
        try:
            method = manager.get_recommended_gateway(country)
        except PaymentException as e:
            print(f"   {name} ({country}): {e}")
            continue
        print(f"   {name} ({country}): {amount} {currency} via {method}")

    # eSewa initiation builds a redirect URL without calling the network
    response = manager.initiate_payment_for_country(regions.COUNTRY_NEPAL, PaymentRequest(
        amount=Decimal('1000'),
        order_id='ORDER-1001',
        success_url='https://shop.example.com/payments/success',
        failure_url='https://shop.example.com/payments/failure',
    ))
    print(f"   eSewa checkout URL: {response.payment_url}")


def main():
    print("=" * 60)
    print("REGION-AWARE GATEWAY SELECTION")
    print("=" * 60)

    manager = build_manager()
    show_available_gateways(manager)
    show_availability_checks(manager)
    show_recommendations(manager)
    show_checkout(manager)


if __name__ == '__main__':
    main()
