"""
Infrastructure package - unified entry points for core services.

This package provides standardized, centralized access to:
- Database (db)
- Authentication (require_auth, require_admin, current_principal)
- Logging (configure_logging, init_logging, get_logger)
"""

from podmarket.infra.db import db
from podmarket.infra.auth import require_auth, require_admin, current_principal
from podmarket.infra.log import configure_logging, init_logging, get_logger

__all__ = [
    "db",
    "require_auth",
    "require_admin",
    "current_principal",
    "configure_logging",
    "init_logging",
    "get_logger",
]
