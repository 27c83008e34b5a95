"""
Unified database infrastructure module.

All models and the SQL credential store import the SQLAlchemy instance from here.
"""

from podmarket.database import db

__all__ = ["db"]
