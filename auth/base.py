"""
Authentication capability.

All account handling goes through a single AuthProvider. Listeners can
subscribe to sign-in / sign-out events and get back a callable that
removes the subscription.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Callable, Dict

from core.models import User, utcnow


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass
class Session:
    """Authenticated session."""
    access_token: str
    user: User
    created_at: datetime = field(default_factory=utcnow)

    @property
    def metadata(self) -> Dict[str, Optional[str]]:
        return {"name": self.user.name, "phone": self.user.phone}


AuthListener = Callable[[AuthEvent, Optional[Session]], None]


class AuthProvider(ABC):
    """Abstract authentication provider."""

    @abstractmethod
    async def get_session(self) -> Optional[Session]:
        """Current session, if signed in."""

    @abstractmethod
    async def sign_up(self, email: str, password: str, phone: str, name: str) -> Session:
        """Create an account and sign it in."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Session:
        """Sign in with email and password."""

    @abstractmethod
    async def sign_out(self) -> None:
        """End the current session."""

    @abstractmethod
    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Subscribe to auth events. Returns an unsubscribe function."""
