# procurement/routes/health.py
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .. import __version__
from ..models import db
from ..services.formatting import format_datetime, utcnow

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Service status for load balancers and uptime checks.
    Reports database connectivity and whether the auto-selection
    scheduler is running. Returns 503 when the database is unreachable.
    """
    health_status = {
        'status': 'healthy',
        'app': 'School Procurement API',
        'version': __version__,
        'timestamp': format_datetime(utcnow()),
        'checks': {},
    }
    status_code = 200

    try:
        db.session.execute(text('SELECT 1'))
        db.session.commit()
        health_status['checks']['database'] = {'status': 'healthy', 'connected': True}
    except SQLAlchemyError as db_error:
        db.session.rollback()
        current_app.logger.error(f"Database health check failed: {db_error}")
        health_status['checks']['database'] = {
            'status': 'unhealthy',
            'connected': False,
            'error': str(db_error),
        }
        health_status['status'] = 'unhealthy'
        status_code = 503

    scheduler = current_app.extensions.get('auto_selection')
    next_run = scheduler.next_run_time() if scheduler else None
    health_status['checks']['auto_selection'] = {
        'enabled': bool(current_app.config.get('AUTO_SELECT_ENABLED')),
        'running': bool(scheduler and scheduler.running),
        'next_run': next_run.isoformat() if next_run else None,
    }

    return jsonify(health_status), status_code
