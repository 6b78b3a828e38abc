"""Authentication package for the application."""
from .credentials import hash_password, verify_password, needs_rehash
from .service import AuthService, get_current_actor, get_current_user
from .router import router as auth_router

__all__ = [
    'hash_password',
    'verify_password',
    'needs_rehash',
    'AuthService',
    'get_current_actor',
    'get_current_user',
    'auth_router'
]
