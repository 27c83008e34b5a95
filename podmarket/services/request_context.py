# -*- coding: utf-8 -*-
"""
Request context middleware for the podmarket API.

Provides request_id generation and propagation throughout the request lifecycle:
- Generates unique request_id for each request
- Adds request_id to response headers
- Makes request_id available in Flask g context
- Supports request_id extraction from incoming headers
- Carries the resolved user id into structured logs
"""

import uuid
import time
from typing import Optional
from flask import Flask, request, g, Response


class RequestContextMiddleware:
    """Middleware for managing request context and request_id propagation."""

    def __init__(self, app: Flask):
        self.app = app

        app.before_request(self._before_request)
        app.after_request(self._after_request)

    def _before_request(self):
        g.request_id = self._get_or_generate_request_id()
        g.request_start_time = time.time()

        g.request_method = request.method
        g.request_path = request.path
        g.request_remote_addr = request.remote_addr
        g.request_user_agent = request.headers.get('User-Agent', '')

    def _after_request(self, response: Response) -> Response:
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id

        if hasattr(g, 'request_start_time'):
            duration_ms = round((time.time() - g.request_start_time) * 1000, 2)
            response.headers['X-Response-Time'] = f"{duration_ms}ms"

        return response

    def _get_or_generate_request_id(self) -> str:
        """Get request_id from headers or generate new one."""
        request_id = request.headers.get('X-Request-ID')

        if request_id:
            try:
                uuid.UUID(request_id)
                return request_id
            except ValueError:
                pass

        return str(uuid.uuid4())


def get_request_id() -> Optional[str]:
    """Get current request_id from Flask g context."""
    return getattr(g, 'request_id', None)


def get_request_context() -> dict:
    """Get complete request context for logging."""
    context = {
        'request_id': getattr(g, 'request_id', None),
        'method': getattr(g, 'request_method', None),
        'path': getattr(g, 'request_path', None),
        'remote_addr': getattr(g, 'request_remote_addr', None),
        'user_agent': getattr(g, 'request_user_agent', None),
    }

    if hasattr(g, 'request_start_time'):
        context['duration_ms'] = round(
            (time.time() - g.request_start_time) * 1000, 2)

    principal = getattr(g, 'principal', None)
    if principal is not None:
        context['user_id'] = principal.user_id

    return context


def init_request_context(app: Flask):
    """Initialize request context middleware for Flask application."""
    return RequestContextMiddleware(app)
