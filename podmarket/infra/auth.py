"""
Unified authentication infrastructure module.

Routes import their session guards from here.
"""

from podmarket.middleware.auth import require_auth, require_admin, current_principal

__all__ = ["require_auth", "require_admin", "current_principal"]
