import os

from unipay import create_app
from unipay.config import DevelopmentConfig, ProductionConfig

app = create_app(DevelopmentConfig if os.getenv('FLASK_DEBUG', '0') == '1' else ProductionConfig)


def main():
    app.run(
        host=os.getenv('FLASK_RUN_HOST', '0.0.0.0'),
        port=int(os.getenv('PORT', os.getenv('FLASK_RUN_PORT', 5000))),
        debug=os.getenv('FLASK_DEBUG', '0') == '1'
    )


if __name__ == '__main__':
    main()
