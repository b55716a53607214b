"""Identity provider.

This module issues and verifies credentials: password sign-up and sign-in,
sign-out, session restore from an access token, and a subscribable stream of
session-change events. Passwords are stored as bcrypt hashes and sessions
are HS256 JWT access tokens.
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import bcrypt
import pytz
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    BCRYPT_ROUNDS,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
)
from core.exceptions import DuplicateEmailError, InvalidCredentialsError, ProviderError
from models.user import UserModel
from schemas.user import AuthEvent, AuthResponse, AuthSession, Identity
from utils.converters import model_to_identity

logger = logging.getLogger(__name__)

AuthStateListener = Callable[[AuthEvent, Optional[AuthSession]], None]

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


class Subscription:
    """Handle returned by ``IdentityProvider.on_auth_state_change``."""

    def __init__(self, provider: "IdentityProvider", listener: AuthStateListener):
        self._provider = provider
        self._listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._provider._remove_listener(self._listener)
            self.active = False


class IdentityProvider:
    """Issues and verifies credentials and holds the current session.

    Listeners registered with ``on_auth_state_change`` are called while the
    provider holds its (non-reentrant) state lock. A listener must therefore
    never call back into the provider synchronously; it has to schedule such
    work for later.
    """

    def __init__(self, db: Session):
        """Initialize IdentityProvider.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db
        self._session: Optional[AuthSession] = None
        self._listeners: List[AuthStateListener] = []
        self._lock = threading.Lock()

    # --- Password hashing ---

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt.

        Args:
            password: Plain text password.

        Returns:
            Hashed password (bcrypt hash string).
        """
        password_bytes = password.encode("utf-8")
        if len(password_bytes) > _BCRYPT_MAX_BYTES:
            logger.warning(
                "Password exceeds %d bytes (%d bytes), truncating",
                _BCRYPT_MAX_BYTES,
                len(password_bytes),
            )
            password_bytes = password_bytes[:_BCRYPT_MAX_BYTES]

        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password_bytes, salt).decode("utf-8")

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify a password against a bcrypt hash.

        Args:
            plain_password: Plain text password to verify.
            hashed_password: Bcrypt hash string to verify against.

        Returns:
            True if password matches, False otherwise.
        """
        password_bytes = plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
        except ValueError as e:
            logger.error("Password verification error: %s", e)
            return False

    # --- Tokens ---

    def _issue_session(self, model: UserModel) -> AuthSession:
        expire = datetime.now(pytz.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        token = jwt.encode(
            {"sub": model.user_id, "email": model.email, "exp": expire},
            JWT_SECRET_KEY,
            algorithm=JWT_ALGORITHM,
        )
        return AuthSession(
            access_token=token,
            expires_at=int(expire.timestamp()),
            user=model_to_identity(model),
        )

    def _decode(self, access_token: str) -> UserModel:
        try:
            payload = jwt.decode(access_token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        except JWTError:
            raise InvalidCredentialsError("Invalid authentication credentials")
        user_id = payload.get("sub")
        if user_id is None:
            raise InvalidCredentialsError("Invalid authentication credentials")
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model is None:
            raise InvalidCredentialsError("User not found")
        return model

    # --- Public API ---

    def sign_up(self, email: str, password: str) -> AuthResponse:
        """Create an identity and sign it in.

        Args:
            email: Email address; compared case-insensitively.
            password: Plain text password.

        Returns:
            AuthResponse with the new identity and its session.

        Raises:
            DuplicateEmailError: If the email is already registered.
            ProviderError: If the identity cannot be stored.
        """
        email = email.strip().lower()
        existing = self.db.query(UserModel).filter(UserModel.email == email).first()
        if existing:
            raise DuplicateEmailError(email)

        model = UserModel(
            user_id=str(uuid.uuid4()),
            email=email,
            password_hash=self.hash_password(password),
            created_at=datetime.now(pytz.utc).isoformat(),
        )
        # Two concurrent sign-ups can both pass the check above; the unique
        # constraint on email decides.
        try:
            self.db.add(model)
            self.db.commit()
            self.db.refresh(model)
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEmailError(email) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ProviderError("Failed to create account") from e

        logger.info("Created identity %s", model.user_id)
        session = self._issue_session(model)
        self._set_session(AuthEvent.SIGNED_IN, session)
        return AuthResponse(user=session.user, session=session)

    def sign_in_with_password(self, email: str, password: str) -> AuthResponse:
        """Sign in with email and password.

        Raises:
            InvalidCredentialsError: If the email is unknown or the password is wrong.
        """
        email = email.strip().lower()
        model = self.db.query(UserModel).filter(UserModel.email == email).first()
        if model is None or not self.verify_password(password, model.password_hash):
            raise InvalidCredentialsError("Invalid email or password")

        model.last_sign_in_at = datetime.now(pytz.utc).isoformat()
        try:
            self.db.commit()
            self.db.refresh(model)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ProviderError("Failed to sign in") from e

        session = self._issue_session(model)
        self._set_session(AuthEvent.SIGNED_IN, session)
        return AuthResponse(user=session.user, session=session)

    def sign_out(self) -> None:
        self._set_session(AuthEvent.SIGNED_OUT, None)

    def get_session(self) -> Optional[AuthSession]:
        with self._lock:
            return self._session

    def set_session(self, access_token: str) -> AuthSession:
        """Resume a session from a previously issued access token.

        Raises:
            InvalidCredentialsError: If the token is invalid or expired.
        """
        model = self._decode(access_token)
        session = AuthSession(
            access_token=access_token,
            expires_at=int(jwt.get_unverified_claims(access_token)["exp"]),
            user=model_to_identity(model),
        )
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    def get_user(self, access_token: str) -> Identity:
        """Verify an access token and return its identity.

        Raises:
            InvalidCredentialsError: If the token is invalid, expired, or its
                user no longer exists.
        """
        return model_to_identity(self._decode(access_token))

    def admin_get_user_by_id(self, user_id: str) -> Optional[Identity]:
        model = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if model is None:
            return None
        return model_to_identity(model)

    # --- Session change events ---

    def on_auth_state_change(self, listener: AuthStateListener) -> Subscription:
        """Register a listener for SIGNED_IN / SIGNED_OUT events."""
        with self._lock:
            self._listeners.append(listener)
        return Subscription(self, listener)

    def _remove_listener(self, listener: AuthStateListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _set_session(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        with self._lock:
            self._session = session
            for listener in list(self._listeners):
                try:
                    listener(event, session)
                except Exception:
                    logger.exception("Auth state listener failed on %s", event.value)
