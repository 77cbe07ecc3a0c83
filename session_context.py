"""Per-client authentication state shared by every component of one session.

A ``SessionContext`` is built explicitly and handed to whatever needs the
current account. It subscribes to the identity gateway's auth-change
notifications on construction and keeps its cached profile in step with
sign-ins, token refreshes, profile updates and sign-outs made elsewhere.

Notifications arrive on whichever thread emitted them, usually another
request's worker. The listener only records the event; the profile is
re-read through this context's own database session the next time the
account is looked at.
"""
import threading
from typing import List, Optional

from errors import AuthError, FoodLinkError, PersistenceError, ValidationError
from identity import AuthEvent, Identity, IdentityGateway
from logger import get_logger
from models import Role, User
from schemas import Notice
from store import DataStore

log = get_logger("session")

PROFILE_FIELDS = ("name", "phone", "address", "organization", "bio")


class SessionContext:
    def __init__(self, gateway: IdentityGateway, store: DataStore):
        self.gateway = gateway
        self.store = store
        self.token: Optional[str] = None
        self.identity: Optional[Identity] = None
        self.loading = True
        self.notices: List[Notice] = []
        self._account: Optional[User] = None
        self._pending: Optional[AuthEvent] = None
        self._lock = threading.Lock()
        self._unsubscribe = gateway.on_auth_state_change(self._on_auth_change)

    # Derived state

    @property
    def account(self) -> Optional[User]:
        self._apply_pending()
        return self._account

    @property
    def is_authenticated(self) -> bool:
        self._apply_pending()
        return self.identity is not None

    @property
    def role(self) -> Optional[Role]:
        account = self.account
        if account is None:
            return None
        return Role(account.role)

    @property
    def is_donor(self) -> bool:
        return self.role is Role.donor

    @property
    def is_ngo(self) -> bool:
        return self.role is Role.ngo

    @property
    def is_beneficiary(self) -> bool:
        return self.role is Role.beneficiary

    def notify(self, kind: str, text: str) -> None:
        self.notices.append(Notice(kind=kind, text=text))

    def require_account(self) -> User:
        account = self.account
        if self.identity is None or account is None:
            raise AuthError()
        return account

    # Resolution

    def resolve(self, token: Optional[str]) -> Optional[User]:
        """Resolve the initial session from a stored token."""
        self.token = token
        self.identity = self.gateway.get_session(token)
        if self.identity is not None:
            self._fetch_profile()
        self.loading = False
        return self._account

    def _fetch_profile(self) -> None:
        try:
            self._account = self.store.get_user(self.identity.id)
        except PersistenceError:
            log.exception("Error fetching user profile %s", self.identity.id)
            self._account = None

    def _clear(self) -> None:
        self.identity = None
        self._account = None
        self.token = None
        with self._lock:
            self._pending = None

    def _on_auth_change(self, event: AuthEvent, identity: Identity) -> None:
        # may run on another request's thread: record only, never touch the store
        if self.identity is None or identity.id != self.identity.id:
            return
        with self._lock:
            if self._pending is not AuthEvent.SIGNED_OUT:
                self._pending = event

    def _apply_pending(self) -> None:
        with self._lock:
            event, self._pending = self._pending, None
        if event is None or self.identity is None:
            return
        if event is AuthEvent.SIGNED_OUT:
            self._clear()
        else:
            self._fetch_profile()
        self.loading = False

    # Operations

    def register(self, email: str, password: str, profile_fields: dict) -> Identity:
        try:
            role = Role(profile_fields.get("role"))
        except ValueError:
            raise ValidationError("Role must be one of donor, ngo or beneficiary")
        name = (profile_fields.get("name") or "").strip()
        if not name:
            raise ValidationError("Name is required")

        identity, token = self.gateway.sign_up(email, password)

        profile = {field: profile_fields.get(field) for field in PROFILE_FIELDS}
        profile.update(id=identity.id, email=identity.email, role=role.value, name=name)
        try:
            self._account = self.store.create_user(profile)
            if role is Role.ngo:
                self.store.create_ngo(
                    {
                        "account_id": identity.id,
                        "name": profile.get("organization") or name,
                        "location": profile.get("address"),
                    }
                )
        except PersistenceError:
            log.error("Profile creation failed; credential %s is orphaned", identity.id)
            raise

        self.identity = identity
        self.token = token
        self.loading = False
        log.info("Registered %s as %s", identity.id, role.value)
        self.notify("success", "Account created successfully!")
        return identity

    def login(self, email: str, password: str) -> Identity:
        identity, token = self.gateway.sign_in(email, password)
        self._clear()
        self.identity = identity
        self.token = token
        self._fetch_profile()
        self.loading = False
        self.notify("success", "Welcome back!")
        return identity

    def logout(self) -> None:
        token = self.token
        self._clear()
        try:
            self.gateway.sign_out(token)
        except FoodLinkError as exc:
            log.warning("Error signing out: %s", exc.message)
        self.notify("success", "Signed out successfully")

    def refresh(self) -> str:
        if not self.is_authenticated:
            raise AuthError()
        self.token = self.gateway.refresh(self.token)
        return self.token

    def update_profile(self, fields: dict) -> User:
        account = self.require_account()
        updates = {k: v for k, v in fields.items() if k in PROFILE_FIELDS}
        if "name" in updates and not (updates["name"] or "").strip():
            raise ValidationError("Name is required")

        self._account = self.store.update_user(account.id, updates)
        self.gateway.events.emit(AuthEvent.USER_UPDATED, self.identity)
        self.notify("success", "Profile updated successfully")
        return self._account

    def close(self) -> None:
        self._unsubscribe()
