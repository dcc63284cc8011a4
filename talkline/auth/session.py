"""Session collaborator: current user identity and token renewal."""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable

from loguru import logger
from pydantic import BaseModel

RenewCallback = Callable[[], Awaitable["UserSession | None"]]
# Returns a fresh session, or None when renewal is impossible


class UserSession(BaseModel):
    """The signed-in user as issued by the authentication service."""
    id: str
    name: str = ""
    email: str = ""
    token: str = ""
    session_id: str = ""

    @property
    def is_live(self) -> bool:
        """A session can authenticate requests only with both token and id."""
        return bool(self.token and self.session_id)


class SessionProvider(ABC):
    """Read-only view of the current session, refreshed by renewal."""

    @abstractmethod
    def get_current_user(self) -> UserSession | None:
        """Return the current user, or None when signed out."""

    @abstractmethod
    async def renew(self) -> bool:
        """Try to renew an invalidated session. Returns True on success."""


class StaticSessionProvider(SessionProvider):
    """Holds a session in memory. Renewal delegates to an optional callback."""

    def __init__(self, user: UserSession | None = None, on_renew: RenewCallback | None = None):
        self._user = user
        self._on_renew = on_renew

    def get_current_user(self) -> UserSession | None:
        return self._user

    def set_user(self, user: UserSession | None) -> None:
        self._user = user

    async def renew(self) -> bool:
        if not self._on_renew:
            logger.warning("Session renewal requested but no renewal hook is configured")
            return False
        try:
            fresh = await self._on_renew()
        except Exception as e:
            logger.error(f"Session renewal failed: {e}")
            return False
        if fresh is None:
            return False
        self._user = fresh
        logger.info("Session renewed for user {}", fresh.id)
        return True


class FileSessionProvider(StaticSessionProvider):
    """Session persisted as JSON (camelCase keys, 0o600)."""

    def __init__(self, path: Path | None = None, on_renew: RenewCallback | None = None):
        self.path = path or get_session_path()
        super().__init__(load_session(self.path), on_renew)

    async def renew(self) -> bool:
        renewed = await super().renew()
        if renewed and self._user is not None:
            save_session(self._user, self.path)
        return renewed


def get_session_path() -> Path:
    """Get the default session file path."""
    return Path.home() / ".talkline" / "session.json"


def load_session(session_path: Path | None = None) -> UserSession | None:
    """Load the stored session, or None if missing or unreadable."""
    from talkline.config.loader import convert_keys

    path = session_path or get_session_path()
    if not path.exists():
        return None

    try:
        with open(path) as f:
            data = json.load(f)
        return UserSession.model_validate(convert_keys(data))
    except (json.JSONDecodeError, ValueError) as e:
        logger.warning(f"Failed to load session from {path}: {e}")
        return None


def save_session(user: UserSession, session_path: Path | None = None) -> None:
    """Save the session to file with 0o600 permissions."""
    from talkline.config.loader import convert_to_camel

    path = session_path or get_session_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(user.model_dump())

    with open(path, "w") as f:
        json.dump(data, f, indent=2)

    os.chmod(path, 0o600)
