"""Error taxonomy shared by the composition and delivery pipeline."""

from __future__ import annotations

# Substrings that mark a failure as a session/authentication problem.
SESSION_VOCABULARY = ("session", "auth", "token")

PERMISSION_VOCABULARY = ("permission", "forbidden", "denied", "권한")
NOT_FOUND_VOCABULARY = ("not found", "no such", "찾을 수 없")


class TalklineError(Exception):
    """Base error with a user-facing short message."""

    def __init__(self, short_message: str, detail: str = ""):
        self.short_message = short_message
        self.detail = detail
        super().__init__(detail or short_message)


class ValidationError(TalklineError):
    """File rejected locally (too large or unsupported type). Never retried."""

    def __init__(self, reason: str, short_message: str, detail: str = ""):
        self.reason = reason
        super().__init__(short_message, detail)


class UploadError(TalklineError):
    """Storage upload failed. The same pending attachment may be retried."""


class DeliveryTimeout(TalklineError):
    """An acknowledged operation got no answer in time."""


class SessionExpired(TalklineError):
    """The session/token was rejected; renewal should be attempted."""


class UnknownTransportError(TalklineError):
    """Fallback for transport failures with no better classification."""


def is_session_error(text: str | None) -> bool:
    """Whether an error text belongs to the session-invalidation vocabulary."""
    if not text:
        return False
    lower = text.lower()
    return any(word in lower for word in SESSION_VOCABULARY)


def describe_failure(text: str | None) -> str:
    """Best-effort user-facing message for a delivery failure."""
    lower = (text or "").lower()
    if any(word in lower for word in PERMISSION_VOCABULARY):
        return "You do not have permission to access this file. Contact an administrator."
    if any(word in lower for word in NOT_FOUND_VOCABULARY):
        return "The stored file could not be found. Please try again in a moment."
    return "An error occurred while sending the message."
