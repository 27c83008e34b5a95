# -*- coding: utf-8 -*-
"""
Session guards.

`load_principal` runs before every request and resolves the session cookie
into `g.principal` (None for anonymous callers). Route handlers pass that
principal explicitly into the core services.
"""
from functools import wraps

from flask import current_app, g, request

from podmarket.services.errors import NotAuthenticated, NotAuthorized

# endpoints that never need an identity
_ANONYMOUS_PATHS = ('/healthz', '/readyz', '/metrics')


def load_principal():
    g.principal = None
    g.session_id = None
    if request.path in _ANONYMOUS_PATHS:
        return
    session_id = request.cookies.get(current_app.config["SESSION_COOKIE"])
    if not session_id:
        return
    services = current_app.extensions["podmarket"]
    g.session_id = session_id
    g.principal = services.sessions.resolve(session_id)


def current_principal():
    """The principal resolved for this request, or None."""
    return getattr(g, 'principal', None)


def require_auth(f):
    """Decorator: 401 unless the request carries a live session."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_principal() is None:
            raise NotAuthenticated()
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    """Decorator: 401 for anonymous callers, 403 for non-admins."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = current_principal()
        if principal is None:
            raise NotAuthenticated()
        if not principal.is_admin:
            raise NotAuthorized("Admin privileges required")
        return f(*args, **kwargs)
    return decorated_function


def init_auth(app):
    app.before_request(load_principal)
