"""
Authentication Package

This package handles account registration and login for the edge server,
backed by the credential store.

Key responsibilities:
- Decoding and validating registration/login payloads
- bcrypt password hashing and constant-time verification
- Uniform error responses that never reveal whether the user id or the
  password was wrong

Modules:
- routes: Public account endpoints (/api/register, /api/login)
- service: Per-request registration/login state machine
- passwords: bcrypt hashing through passlib

The login flow:
1. Client posts {id_utilisateur, password} to /api/login
2. Service fetches the stored hash for the id
3. Password is verified against the hash (dummy work for unknown ids)
4. Profile fields (never the hash) are returned
"""

from .passwords import PasswordHasher
from .routes import auth_router
from .service import AuthService

__all__ = [
    "auth_router",
    "AuthService",
    "PasswordHasher",
]
