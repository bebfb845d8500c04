"""
Account registration and login.

Each call walks the same state machine::

    MethodCheck -> StoreCheck -> Decode -> Validate -> Hash/Verify -> Persist/Respond

and either returns a result or raises one of the ``AuthError`` subclasses from
``groupie_edge.errors``. The service holds no state between requests; the
store is injected at construction and may be None (degraded mode).

All methods are blocking (bcrypt, database round-trips). The routes call them
through ``run_in_threadpool``.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..errors import (
    Conflict,
    Internal,
    InvalidCredentials,
    InvalidFields,
    InvalidPayload,
    MethodNotAllowed,
    MissingCredentials,
    StoreUnavailable,
)
from ..models import LoginRequest, RegisterRequest, UserProfile
from ..store import CredentialStore, DuplicateUserError, StoreError
from .passwords import PasswordHasher

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """
    Validates account payloads and talks to the credential store.

    Args:
        store: Credential store, or None when the database is disabled or
            failed to initialize.
        hasher: Password hasher shared by the process.
    """

    def __init__(self, store: Optional[CredentialStore], hasher: PasswordHasher):
        self._store = store
        self._hasher = hasher

    # =========================================================================
    # Entry Points
    # =========================================================================

    def register(self, method: str, body: bytes) -> int:
        """
        Register a user from a raw request.

        Returns:
            The generated user id.
        """
        store = self._check_request(method)
        payload = self._decode(RegisterRequest, body)

        password = payload.password.get_secret_value()
        if (
            not payload.nom
            or not payload.prenom
            or not payload.sexe
            or len(password) < MIN_PASSWORD_LENGTH
        ):
            raise InvalidFields()

        logger.debug("Register attempt")

        try:
            password_hash = self._hasher.hash(password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password hashing failed: {type(e).__name__}")
            raise Internal("Failed to hash password")

        try:
            user_id = store.create_user(payload.nom, payload.prenom, payload.sexe, password_hash)
        except DuplicateUserError as e:
            # The driver message quotes the duplicate names.
            logger.warning("Registration conflict on (Nom, Prénom)")
            logger.debug(f"Duplicate user detail: {e}")
            raise Conflict()
        except StoreError as e:
            logger.error(f"Registration insert failed: {e}")
            raise Internal()

        logger.info("User created", extra={"id_utilisateur": user_id})
        return user_id

    def login(self, method: str, body: bytes) -> UserProfile:
        """
        Authenticate a user from a raw request.

        A missing user and a wrong password raise the same InvalidCredentials
        after the same amount of hashing work.
        """
        store = self._check_request(method)
        credentials = self._decode(LoginRequest, body)

        password = credentials.password.get_secret_value()
        if credentials.id_utilisateur <= 0 or not password:
            raise MissingCredentials()

        try:
            record = store.find_by_id(credentials.id_utilisateur)
        except StoreError as e:
            logger.error(f"Login lookup failed: {e}")
            raise Internal()

        if record is None:
            self._hasher.dummy_verify()
            logger.info("Login rejected", extra={"id_utilisateur": credentials.id_utilisateur})
            raise InvalidCredentials()

        if not self._hasher.verify(password, record.password_hash):
            logger.info("Login rejected", extra={"id_utilisateur": credentials.id_utilisateur})
            raise InvalidCredentials()

        logger.info("Login ok", extra={"id_utilisateur": record.id})
        return UserProfile(
            id_utilisateur=credentials.id_utilisateur,
            nom=record.last_name,
            prenom=record.first_name,
            sexe=record.sex,
        )

    # =========================================================================
    # State Machine Steps
    # =========================================================================

    def _check_request(self, method: str) -> CredentialStore:
        if method.upper() != "POST":
            raise MethodNotAllowed()
        if self._store is None:
            raise StoreUnavailable()
        return self._store

    @staticmethod
    def _decode(model, body: bytes):
        try:
            return model.model_validate_json(body or b"")
        except ValidationError:
            raise InvalidPayload()
