# -*- coding: utf-8 -*-
"""
Rate limiting for credential endpoints.

Storage and the on/off switch come from app config
(RATELIMIT_STORAGE_URI, RATELIMIT_ENABLED); Redis is used when the URI
points at one, memory otherwise.
"""
from flask import current_app, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from podmarket.infra.log import get_logger

logger = get_logger('podmarket.security')


def auth_rate_limit() -> str:
    return current_app.config.get("AUTH_RATE_LIMIT", "10 per minute")


def rate_limit_exceeded_handler(request_limit):
    logger.log_security_event(
        "rate_limit_exceeded",
        severity='warning',
        path=request.path,
        limit=str(request_limit.limit),
    )


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    headers_enabled=True,
    strategy="fixed-window",
    on_breach=rate_limit_exceeded_handler,
)


def init_rate_limiter(app):
    limiter.init_app(app)
    return limiter
