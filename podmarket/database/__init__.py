from podmarket.database.db import db

__all__ = ["db"]
