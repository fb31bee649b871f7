"""
Payment System Package
Gateway registry, payment manager and provider integrations.
"""

from flask import Blueprint

# Create payment blueprint
payment_bp = Blueprint('payments', __name__, url_prefix='/payments')

# Import routes to register them with the blueprint
from . import routes  # noqa: E402,F401


def init_payment_system(app, manager):
    """
    Initialize the payment system with the Flask app.

    Args:
        app: Flask application
        manager: PaymentManager serving the endpoints
    """
    app.extensions['payment_manager'] = manager
    app.register_blueprint(payment_bp)

    return app
