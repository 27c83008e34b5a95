"""
Error handling middleware.

Turns service exceptions into consistent JSON responses:
{"error": <code>, "message": <text>}
"""
from flask import jsonify
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from podmarket.infra.log import get_logger
from podmarket.services.errors import MarketplaceError, UpstreamFailure

logger = get_logger('podmarket.errors')


def register_error_handlers(app):
    """Register error handlers for the marketplace API"""

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(e):
        if isinstance(e, UpstreamFailure):
            logger.log_error_event(e.message, error_type="upstream")
        elif e.status_code >= 500:
            logger.error(f"Service error: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        """Handle pydantic validation errors from request parsing"""
        details = [
            {'loc': '.'.join(str(part) for part in err.get('loc', ())), 'msg': err.get('msg')}
            for err in e.errors()
        ]
        return jsonify({
            'error': 'validation_error',
            'message': 'Invalid request',
            'details': details,
        }), 400

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        """Handle database integrity errors (foreign key, unique constraint)"""
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.error(f"Database integrity error: {error_msg}")

        if 'foreign key' in error_msg.lower():
            return jsonify({
                'error': 'invalid_reference',
                'message': 'Referenced entity does not exist'
            }), 400

        return jsonify({
            'error': 'duplicate_entry',
            'message': 'This entry already exists'
        }), 409

    @app.errorhandler(OperationalError)
    def handle_operational_error(e):
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.error(f"Database operational error: {error_msg}")
        return jsonify({
            'error': 'database_error',
            'message': 'Database operation failed. Please try again later.'
        }), 503

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({
            'error': (e.name or 'http_error').lower().replace(' ', '_'),
            'message': e.description,
        }), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error: {e}")
        return jsonify({
            'error': 'internal_error',
            'message': 'Unexpected server error'
        }), 500
