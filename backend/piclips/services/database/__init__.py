from .db import DatabaseManager

__all__ = ["DatabaseManager"]
