"""talkline - chat message composition and delivery pipeline."""

__version__ = "0.1.0"
__logo__ = "💬"
