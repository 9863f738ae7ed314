"""
Local authentication provider backed by the ``users`` table.

Passwords are stored as passlib hashes; a plaintext password never
reaches the database.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Callable, Dict, List

from passlib.context import CryptContext

from auth.base import AuthProvider, AuthEvent, AuthListener, Session
from core.config import Config
from core.database import Database
from core.errors import AuthError
from core.models import utcnow

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format
        return False


class LocalAuthProvider(AuthProvider):
    """Email/password accounts stored in the local database."""

    def __init__(self, db: Database, session_ttl: Optional[timedelta] = None):
        self.db = db
        self.session_ttl = session_ttl or timedelta(hours=Config.SESSION_TTL_HOURS)
        self._current: Optional[Session] = None
        self._sessions: Dict[str, Session] = {}
        self._listeners: List[AuthListener] = []

    def _emit(self, event: AuthEvent, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception as e:
                logger.error(f"❌ Auth listener failed on {event.value}: {e}", exc_info=True)

    def _start_session(self, session_user) -> Session:
        cutoff = utcnow() - self.session_ttl
        for token in [t for t, s in self._sessions.items() if s.created_at <= cutoff]:
            del self._sessions[token]
        session = Session(access_token=secrets.token_urlsafe(32), user=session_user)
        self._sessions[session.access_token] = session
        self._current = session
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def get_session(self) -> Optional[Session]:
        return self._current

    def session_for_token(self, token: Optional[str],
                          now: Optional[datetime] = None) -> Optional[Session]:
        """Look up a live session by its access token. Expired sessions are dropped."""
        if not token:
            return None
        session = self._sessions.get(token)
        if session is None:
            return None
        if session.created_at + self.session_ttl <= (now or utcnow()):
            self._sessions.pop(token, None)
            if self._current is session:
                self._current = None
            logger.info(f"Session expired for {session.user.email}")
            return None
        return session

    async def sign_up(self, email: str, password: str, phone: str, name: str) -> Session:
        email = (email or "").strip().lower()
        # Raises AlreadyRegisteredError on a duplicate email
        user = await self.db.create_user(
            name=(name or "").strip(),
            email=email,
            phone=(phone or "").strip() or None,
            password_hash=hash_password(password),
        )
        logger.info(f"✅ User registered: {email}")
        return self._start_session(user)

    async def sign_in(self, email: str, password: str) -> Session:
        user = await self.db.get_user_by_email(email)
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info(f"Failed sign-in for {email}")
            raise AuthError()
        logger.info(f"🔑 User signed in: {user.email}")
        return self._start_session(user)

    async def sign_out(self, token: Optional[str] = None) -> None:
        """End the current session, or the one identified by token."""
        session = self._sessions.pop(token, None) if token else self._current
        if session is None:
            return
        self._sessions.pop(session.access_token, None)
        if self._current is session:
            self._current = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe
