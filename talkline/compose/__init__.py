"""Message composition: draft text, keys and mentions."""

from talkline.compose.input_state import Draft, DraftStatus, InputStateManager, KeyResult
from talkline.compose.keys import Key, parse_key
from talkline.compose.mentions import AI_PERSONAS, MentionState, Participant

__all__ = [
    "AI_PERSONAS",
    "Draft",
    "DraftStatus",
    "InputStateManager",
    "Key",
    "KeyResult",
    "MentionState",
    "Participant",
    "parse_key",
]
