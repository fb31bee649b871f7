import logging

from flask import Flask

from .config import Config
from .payments import init_payment_system
from .payments.bootstrap import setup_payment_manager_from_env


def create_app(config_class=None, manager=None):
    """
    Create the Flask application.

    Args:
        config_class: Configuration class (Config if None)
        manager: PaymentManager to serve; built from the environment if None
    """
    app = Flask(__name__)

    config_obj = config_class or Config
    app.config.from_object(config_obj)

    level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("unipay").setLevel(level)

    if manager is None:
        manager = setup_payment_manager_from_env(
            use_default_registry=app.config.get("USE_DEFAULT_REGISTRY", True)
        )
        app.logger.info(
            f"Payment gateways configured: {', '.join(manager.list_gateways()) or 'none'}"
        )

    init_payment_system(app, manager)

    @app.route("/health")
    def health():
        return {"status": "ok", "gateways": manager.list_gateways()}

    return app
