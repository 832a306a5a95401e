"""Health check endpoints for monitoring."""
import os
from datetime import datetime
from flask import Blueprint, jsonify

from database import database_health_check
from error_tracking import get_error_summary

health_bp = Blueprint('health', __name__, url_prefix='/api/health')


@health_bp.route('', methods=['GET'])
def health_check():
    """Database connectivity plus the error-tracker summary."""
    database = database_health_check()
    healthy = database['status'] == 'healthy'
    return jsonify({
        'status': 'healthy' if healthy else 'unhealthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'store-backoffice',
        'version': os.getenv('APP_VERSION', '1.0.0'),
        'checks': {
            'database': database,
        },
        'errors': get_error_summary()
    }), 200 if healthy else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Liveness probe endpoint."""
    return jsonify({'status': 'alive'}), 200
