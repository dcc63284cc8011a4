"""User-visible notifications raised by the delivery pipeline."""

from dataclasses import dataclass
from typing import Callable

from loguru import logger

INFO = "info"
SUCCESS = "success"
WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: str  # info | success | warning | error
    message: str


Notifier = Callable[[Notice], None]

_LOG_LEVELS = {
    INFO: "INFO",
    SUCCESS: "SUCCESS",
    WARNING: "WARNING",
    ERROR: "ERROR",
}


def log_notifier(notice: Notice) -> None:
    """Default notifier: route notices to the log."""
    logger.log(_LOG_LEVELS.get(notice.level, "INFO"), notice.message)


# Messages
DISCONNECTED = "The connection to the chat server was lost."
NO_ROOM = "Chat room information could not be found."
FILE_STORED_NOT_SENT = "The file was uploaded but the message could not be sent. Please try again."
FILE_UPLOADED = "The file was uploaded successfully."
SESSION_EXPIRED = "Your session has expired. Please sign in again."
HISTORY_TIMEOUT = "Loading previous messages timed out."
HISTORY_FAILED = "Failed to load previous messages."
