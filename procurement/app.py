# procurement/app.py
import atexit
import importlib
import logging

import click
from flask import Flask, jsonify, request
from flask_login import LoginManager
from werkzeug.exceptions import HTTPException

from . import __version__
from .config import config, get_config_name
from .errors import ProcurementError
from .middleware.auth import load_user_from_request
from .middleware.cors import setup_cors
from .models import db, User
from .routes import BLUEPRINTS
from .services.factory import get_notifier
from .services.scheduler import AutoSelectionScheduler


def configure_logging(app, config_name):
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    if app.debug:
        level = logging.DEBUG

    if config_name == 'production':
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]',
        )
    else:
        logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    logging.getLogger('procurement').setLevel(level)
    app.logger.setLevel(level)
    # APScheduler logs every job execution at INFO
    logging.getLogger('apscheduler').setLevel(logging.WARNING)


def create_app(config_name=None, start_scheduler=None):
    """
    Application factory.

    Loads configuration, wires the database, CORS and bearer-token auth,
    registers the API blueprints and, when AUTO_SELECT_ENABLED is set, starts
    the daily auto-selection scheduler.
    """
    if config_name is None:
        config_name = get_config_name()

    app = Flask(__name__)

    config_class = config[config_name]
    app.config.from_object(config_class())
    configure_logging(app, config_name)
    app.logger.info(f"Configuration loaded for {config_name} environment")

    db_uri = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    app.logger.info(f"Using database: {db_uri.split('://')[0] if '://' in db_uri else 'unknown'}")

    db.init_app(app)
    setup_cors(app)

    # Stateless API: identity comes from the Authorization header on every request
    login_manager = LoginManager()
    login_manager.init_app(app)
    login_manager.session_protection = None
    login_manager.request_loader(load_user_from_request)

    @login_manager.user_loader
    def load_user(user_id):
        try:
            return db.session.get(User, int(user_id))
        except (ValueError, TypeError):
            app.logger.warning(f"Invalid user_id provided to user_loader: {user_id}")
            return None

    @login_manager.unauthorized_handler
    def handle_unauthorized():
        app.logger.warning(f"Unauthorized API access attempt to {request.path} from {request.remote_addr}")
        return jsonify({
            'error': 'Authentication required',
            'code': 'UNAUTHORIZED',
        }), 401

    for module_name, blueprint_name, url_prefix in BLUEPRINTS:
        module = importlib.import_module(f'.routes.{module_name}', package=__package__)
        app.register_blueprint(getattr(module, blueprint_name), url_prefix=url_prefix)
        app.logger.debug(f"Registered {blueprint_name} at {url_prefix}")
    app.logger.info(f"Registered {len(BLUEPRINTS)} blueprints")

    register_error_handlers(app)

    @app.route('/')
    def index():
        return jsonify({
            'message': 'School Procurement API',
            'status': 'running',
            'version': __version__,
            'environment': config_name,
            'endpoints': {
                'health': '/api/health',
                'auth': '/api/auth',
                'bid_requests': '/api/bid-requests',
                'supplier_offers': '/api/supplier-offers',
                'supplier': '/api/supplier',
                'admin': '/api/admin',
                'delivery': '/api/delivery',
                'payment': '/api/payment',
            },
        })

    with app.app_context():
        db.create_all()
        app.logger.info("Database tables ready")

    notifier = get_notifier(app)

    scheduler = AutoSelectionScheduler(app)
    app.extensions['auto_selection'] = scheduler
    if start_scheduler is None:
        start_scheduler = app.config.get('AUTO_SELECT_ENABLED', False)
    if start_scheduler:
        scheduler.start()
        atexit.register(scheduler.stop)
    else:
        app.logger.info("Auto-selection scheduler disabled")

    atexit.register(notifier.shutdown, wait=False)
    register_commands(app)

    app.logger.info("Application initialization complete")
    return app


def register_error_handlers(app):

    @app.errorhandler(ProcurementError)
    def handle_procurement_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.code} on {request.method} {request.path}: {error.message}")
        else:
            app.logger.info(f"{error.code} on {request.method} {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'error': f'The requested endpoint {request.path} does not exist',
            'code': 'NOT_FOUND',
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            'error': f'The method {request.method} is not allowed for endpoint {request.path}',
            'code': 'METHOD_NOT_ALLOWED',
        }), 405

    @app.errorhandler(Exception)
    def internal_error(error):
        if isinstance(error, HTTPException):
            return jsonify({'error': error.description, 'code': error.name.upper().replace(' ', '_')}), error.code
        db.session.rollback()
        app.logger.exception(f"Unhandled error on {request.method} {request.path}")
        return jsonify({'error': 'Internal server error', 'code': 'INTERNAL_ERROR'}), 500


def register_commands(app):

    @app.cli.command('auto-select')
    def auto_select_command():
        """Run the auto-selection sweep once and print the summary."""
        report = app.extensions['auto_selection'].run_once()
        click.echo(
            f"Auto-selection at {report['run_at']}: {report['candidates']} candidates, "
            f"{report['awarded']} awarded, {report['skipped']} skipped, {report['failed']} failed"
        )
        for award in report['awards']:
            click.echo(
                f"  item {award['bid_item_id']}: offer {award['offer_id']} "
                f"(supplier {award['supplier_id']}) total {award['total_price']}"
            )
