"""Identity gateway: credentials, session tokens and auth-change notifications.

Credentials are stored apart from profile rows (``users``), so a profile write
can fail after the credential already exists. Tokens are signed with
itsdangerous and carry the credential's ``session_version``; signing out bumps
the version, which revokes every outstanding token for that identity.
"""
import uuid
from enum import Enum
from typing import Callable, List, Optional, Tuple

from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from config import Config
from errors import AuthError, PersistenceError, ValidationError
from logger import get_logger
from models import Credential

log = get_logger("identity")

pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


class Identity(BaseModel):
    id: str
    email: str


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


Listener = Callable[[AuthEvent, Identity], None]


class AuthEventHub:
    """Fan-out of auth-change notifications to every live session context."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: AuthEvent, identity: Identity) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, identity)
            except Exception:
                log.exception("Auth listener failed on %s for %s", event.value, identity.id)


class IdentityGateway:
    def __init__(
        self,
        session: Session,
        events: AuthEventHub,
        secret_key: Optional[str] = None,
        max_age_seconds: Optional[int] = None,
    ):
        self.session = session
        self.events = events
        self.max_age_seconds = max_age_seconds or Config.SESSION_MAX_AGE
        self.serializer = URLSafeTimedSerializer(
            secret_key or Config.AUTH_SECRET, salt="foodlink-session"
        )

    def _issue_token(self, credential: Credential) -> str:
        return self.serializer.dumps({"sub": credential.id, "ver": credential.session_version})

    def _load_token(self, token: Optional[str]) -> Optional[Credential]:
        """
        Returns the credential a token belongs to, or None if the token is
        invalid, expired or revoked by a later sign-out.
        """
        if not token:
            return None
        try:
            data = self.serializer.loads(token, max_age=self.max_age_seconds)
        except BadSignature:
            return None
        credential = self.session.get(Credential, data.get("sub"), populate_existing=True)
        if credential is None or credential.session_version != data.get("ver"):
            return None
        return credential

    def _commit(self, credential: Credential) -> None:
        try:
            self.session.add(credential)
            self.session.commit()
            self.session.refresh(credential)
        except SQLAlchemyError as exc:
            self.session.rollback()
            log.error("Credential write failed for %s: %s", credential.email, exc)
            raise PersistenceError("Could not reach the identity service") from exc

    @staticmethod
    def _identity(credential: Credential) -> Identity:
        return Identity(id=credential.id, email=credential.email)

    def sign_up(self, email: str, password: str) -> Tuple[Identity, str]:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email address is required")
        if len(password or "") < Config.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password should be at least {Config.MIN_PASSWORD_LENGTH} characters"
            )

        existing = self.session.exec(
            select(Credential).where(Credential.email == email)
        ).first()
        if existing:
            raise ValidationError("User already registered")

        credential = Credential(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(password),
        )
        self._commit(credential)
        log.info("Credential created for %s", credential.id)

        identity = self._identity(credential)
        self.events.emit(AuthEvent.SIGNED_IN, identity)
        return identity, self._issue_token(credential)

    def sign_in(self, email: str, password: str) -> Tuple[Identity, str]:
        email = (email or "").strip().lower()
        credential = self.session.exec(
            select(Credential).where(Credential.email == email)
        ).first()

        if credential is None or not verify_password(password or "", credential.password_hash):
            raise AuthError("Invalid login credentials")

        identity = self._identity(credential)
        self.events.emit(AuthEvent.SIGNED_IN, identity)
        return identity, self._issue_token(credential)

    def sign_out(self, token: Optional[str]) -> None:
        credential = self._load_token(token)
        if credential is None:
            raise AuthError("Invalid or expired session")

        credential.session_version += 1
        self._commit(credential)
        self.events.emit(AuthEvent.SIGNED_OUT, self._identity(credential))

    def refresh(self, token: Optional[str]) -> str:
        credential = self._load_token(token)
        if credential is None:
            raise AuthError("Invalid or expired session")

        self.events.emit(AuthEvent.TOKEN_REFRESHED, self._identity(credential))
        return self._issue_token(credential)

    def get_session(self, token: Optional[str]) -> Optional[Identity]:
        credential = self._load_token(token)
        return self._identity(credential) if credential else None

    def on_auth_state_change(self, listener: Listener) -> Callable[[], None]:
        return self.events.subscribe(listener)
