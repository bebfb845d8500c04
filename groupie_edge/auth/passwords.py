"""
Password hashing.

bcrypt through passlib's CryptContext. The cost factor comes from
BCRYPT_ROUNDS; verification is constant-time, and ``dummy_verify`` burns the
same amount of work for unknown users so lookup misses and wrong passwords
cannot be told apart by timing.
"""

from passlib.context import CryptContext


class PasswordHasher:
    """Salted, adaptive hashing of user passwords."""

    def __init__(self, rounds: int = 10):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Check a password against a stored hash.

        A malformed stored hash counts as a mismatch.
        """
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            return False

    def dummy_verify(self) -> None:
        self._context.dummy_verify()
