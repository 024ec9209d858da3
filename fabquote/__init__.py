"""Flask application factory."""
import logging
import os

from flask import Flask, jsonify, request

from fabquote.utils.json_provider import DecimalJSONProvider


def create_app(config_object='config.Config', store=None):
    """
    Create and configure the Flask application.

    Args:
        config_object: Import path or class passed to app.config.from_object
        store: Optional pre-built store (tests pass a MemoryStore)
    """
    app = Flask(__name__)
    app.json = DecimalJSONProvider(app)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Sentry error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN') or os.getenv('SENTRY_DSN')
    if sentry_dsn and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=app.config.get('ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Store and books
    from fabquote.services.store_service import init_store
    from fabquote.books import init_books
    init_books(app, init_store(app, store))

    # Blueprints
    from fabquote.blueprints.draft import draft_bp
    from fabquote.blueprints.quotations import quotations_bp
    from fabquote.blueprints.invoices import invoices_bp
    from fabquote.blueprints.orders import orders_bp
    from fabquote.blueprints.customers import customers_bp
    from fabquote.blueprints.catalog import catalog_bp
    from fabquote.blueprints.health import health_bp

    app.register_blueprint(draft_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(health_bp)

    # Error Handlers
    from fabquote.exceptions import FabQuoteError

    @app.errorhandler(FabQuoteError)
    def handle_fabquote_error(error):
        """Handle engine exceptions as JSON."""
        if error.status_code >= 500:
            app.logger.error(f"FabQuoteError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"FabQuoteError [{error.status_code}] {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'status': 'error', 'message': 'Method Not Allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    return app
