from flask import Flask
from flask_cors import CORS
from http import HTTPStatus
import logging

from marketplace.extensions.extension import db, jwt, migrate
from marketplace.utils.responses import error_response


def create_app(config_name='default', services=None):
    """
    Build the application.

    ``services`` replaces the gateway, storage, mail and identity clients
    built from configuration, which is how tests inject fakes.
    """
    from marketplace.config import config_by_name

    # Initialize app
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    CORS(app)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Initialize extensions with app
    db.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)

    # Import JWT utils to register the loaders
    from marketplace.utils import jwt_utils  # noqa: F401

    from marketplace.services.registry import EXTENSION_KEY, Services
    app.extensions[EXTENSION_KEY] = services or Services.from_config(app.config, db)

    # Register blueprints
    from marketplace.routes.auth.auth import auth_bp
    from marketplace.routes.auth.recovery import recovery_bp
    from marketplace.routes.user.user import user_bp
    from marketplace.routes.products.products import products_bp
    from marketplace.routes.transactions.transactions import transactions_bp
    from marketplace.routes.payments.webhooks import webhook_bp
    from marketplace.routes.chat.chat import chat_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(recovery_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(webhook_bp)
    app.register_blueprint(chat_bp)

    from marketplace.cli import register_commands
    register_commands(app)

    @app.route('/')
    def index():
        return "Welcome to the Marketplace API"

    @app.errorhandler(HTTPStatus.NOT_FOUND)
    def not_found(e):
        return error_response(HTTPStatus.NOT_FOUND, 'Resource not found')

    @app.errorhandler(HTTPStatus.METHOD_NOT_ALLOWED)
    def method_not_allowed(e):
        return error_response(HTTPStatus.METHOD_NOT_ALLOWED, 'Method not allowed')

    @app.errorhandler(HTTPStatus.REQUEST_ENTITY_TOO_LARGE)
    def payload_too_large(e):
        return error_response(HTTPStatus.REQUEST_ENTITY_TOO_LARGE, 'Uploaded file is too large')

    @app.errorhandler(HTTPStatus.INTERNAL_SERVER_ERROR)
    def internal_error(e):
        return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, 'Internal server error')

    from marketplace.models.document import StoredDocument  # noqa: F401

    # Create database tables
    with app.app_context():
        db.create_all()

    return app
