"""Session management."""

from talkline.auth.session import (
    FileSessionProvider,
    SessionProvider,
    StaticSessionProvider,
    UserSession,
    get_session_path,
    load_session,
    save_session,
)

__all__ = [
    "UserSession",
    "SessionProvider",
    "StaticSessionProvider",
    "FileSessionProvider",
    "load_session",
    "save_session",
    "get_session_path",
]
