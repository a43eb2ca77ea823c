"""API route modules."""
from api.routes import attempts, tests, users

__all__ = ["attempts", "tests", "users"]
