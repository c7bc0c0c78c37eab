import logging
import logging.config
from datetime import datetime, timezone

from flask import Flask, current_app

from config import Config
from factory import OAuth2ServerFactory
from services import ServiceLocator
from storage import MemoryStorage

MEMORY_STORAGE = 'oauth2.storage.memory'


def create_services():
    services = ServiceLocator()
    services.register(MEMORY_STORAGE, lambda locator: MemoryStorage())
    return services


def create_app(config_object=Config, services=None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    if app.config.get('LOGGING_CONFIG'):
        logging.config.dictConfig(app.config['LOGGING_CONFIG'])

    if services is None:
        services = create_services()

    factory = OAuth2ServerFactory(app.config['OAUTH2'], services)
    server = factory.get_server()
    server.init_app(app)

    app.extensions['oauth2_server'] = server
    app.extensions['oauth2_services'] = services

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        return response

    @app.route('/health')
    def health_check():
        oauth2_server = current_app.extensions['oauth2_server']
        return {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'grant_types': [strategy.name for strategy in oauth2_server.grant_types],
        }, 200

    logging.info(f"Application created with storage: {app.config['OAUTH2'].get('storage')}")
    return app


if __name__ == '__main__':
    import os

    create_app().run(port=int(os.environ.get('PORT', 5000)), debug=Config.DEBUG)
