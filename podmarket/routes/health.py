# -*- coding: utf-8 -*-

import time

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from podmarket.infra.db import db
from podmarket.infra.log import get_logger

health_bp = Blueprint('health', __name__)
logger = get_logger('podmarket.health')


@health_bp.route('/healthz', methods=['GET', 'HEAD'])
def healthz():
    """Liveness check; exempt from auth and request logging."""
    return jsonify({
        'status': 'healthy',
        'service': 'podmarket',
        'timestamp': time.time()
    }), 200


@health_bp.route('/readyz', methods=['GET', 'HEAD'])
def readyz():
    """Readiness check: the database answers."""
    try:
        db.session.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        db.session.rollback()
        database_ok = False

    return jsonify({
        'status': 'ready' if database_ok else 'not_ready',
        'service': 'podmarket',
        'timestamp': time.time(),
        'checks': {
            'database': database_ok
        }
    }), 200 if database_ok else 503
