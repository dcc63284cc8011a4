"""Draft text, caret tracking, mention state and markdown edits."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

from talkline.compose.keys import Key
from talkline.compose.mentions import (
    MentionState,
    Participant,
    apply_mention,
    resolve_mention_state,
)
from talkline.media.attachment import PendingAttachment


class DraftStatus(str, Enum):
    idle = "idle"
    ready = "ready"
    dispatching = "dispatching"


@dataclass
class Draft:
    """The message being composed: text plus at most one attachment."""

    text: str = ""
    attachment: PendingAttachment | None = None
    status: DraftStatus = DraftStatus.idle

    def __post_init__(self):
        self.refresh_status()

    @property
    def is_sendable(self) -> bool:
        if self.text.strip():
            return True
        return self.attachment is not None and self.attachment.is_sendable

    def refresh_status(self) -> None:
        if self.status != DraftStatus.dispatching:
            self.status = DraftStatus.ready if self.is_sendable else DraftStatus.idle


@dataclass
class KeyResult:
    handled: bool
    submit: bool = False


class InputStateManager:
    """Owns the draft text and keeps mention state in step with every edit."""

    def __init__(
        self,
        roster: list[Participant] | None = None,
        on_change: Callable[[str], None] | None = None,
    ):
        self._roster = list(roster or [])
        self._on_change = on_change
        self._text = ""
        self._caret = 0
        self.mention = MentionState()

    @property
    def text(self) -> str:
        return self._text

    @property
    def caret(self) -> int:
        return self._caret

    @property
    def roster(self) -> list[Participant]:
        return list(self._roster)

    def set_roster(self, roster: list[Participant]) -> None:
        self._roster = list(roster)
        self._recompute()

    def set_text(self, text: str, caret: int | None = None) -> None:
        """Replace the text (e.g. on keystroke). Caret defaults to the end."""
        self._text = text
        self._caret = len(text) if caret is None else max(0, min(caret, len(text)))
        self._recompute()
        if self._on_change:
            self._on_change(text)

    def move_caret(self, caret: int) -> None:
        self._caret = max(0, min(caret, len(self._text)))
        self._recompute()

    def clear(self) -> None:
        self._text = ""
        self._caret = 0
        self.mention.clear()

    def draft(self, attachment: PendingAttachment | None = None) -> Draft:
        return Draft(text=self._text, attachment=attachment)

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def handle_key(self, key: Key, has_attachment: bool = False) -> KeyResult:
        """Apply a navigation/commit key. submit=True asks the caller to send."""
        if self.mention.active:
            if key == Key.DOWN:
                self.mention.move(1)
                return KeyResult(handled=True)
            if key == Key.UP:
                self.mention.move(-1)
                return KeyResult(handled=True)
            if key in (Key.TAB, Key.ENTER):
                # No-op on an empty list; the key is still consumed
                self.select_mention()
                return KeyResult(handled=True)
            if key == Key.ESC:
                self.mention.clear()
                return KeyResult(handled=True)
            return KeyResult(handled=False)

        if key == Key.ENTER:
            return KeyResult(handled=True, submit=bool(self._text.strip()) or has_attachment)
        if key == Key.SHIFT_ENTER:
            self.insert_text("\n")
            return KeyResult(handled=True)
        return KeyResult(handled=False)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def select_mention(self, participant: Participant | None = None) -> bool:
        """Commit a candidate (the highlighted one by default).

        Returns False, without touching the text, when no mention is active.
        """
        trigger = self.mention.trigger
        if trigger is None:
            return False
        participant = participant or self.mention.highlighted
        if participant is None:
            return False

        text, caret = apply_mention(self._text, trigger, participant)
        self.mention.clear()
        self.set_text(text, caret)
        return True

    def insert_text(self, value: str) -> None:
        """Insert at the caret and move the caret past the insertion."""
        caret = self._caret
        self.set_text(self._text[:caret] + value + self._text[caret:], caret + len(value))

    def insert_emoji(self, emoji: str) -> None:
        self.insert_text(emoji)

    def apply_markdown(
        self, markdown: str, start: int | None = None, end: int | None = None
    ) -> int:
        """Apply a toolbar markdown snippet to the selection [start, end).

        Three shapes are supported:
        - block snippets containing a blank line ("```\\n\\n```") wrap the
          selection on its own line;
        - prefix snippets ending in a space ("- ", "> ") are inserted before it;
        - anything else ("**", "_") wraps it on both sides.

        Returns the new caret position.
        """
        start = self._caret if start is None else start
        end = start if end is None else end
        start, end = sorted((max(0, start), min(end, len(self._text))))
        selected = self._text[start:end]
        before, after = self._text[:start], self._text[end:]

        if "\n" in markdown:
            text = before + markdown.replace("\n\n", f"\n{selected}\n", 1) + after
            if selected:
                caret = start + len(markdown.split("\n")[0]) + 1 + len(selected)
            else:
                caret = start + markdown.index("\n") + 1
        elif markdown.endswith(" "):
            text = before + markdown + selected + after
            caret = start + len(markdown) + len(selected)
        else:
            text = before + markdown + selected + markdown + after
            caret = start + len(markdown) + len(selected)

        self.set_text(text, caret)
        return caret

    def _recompute(self) -> None:
        previous = self.mention
        state = resolve_mention_state(self._text, self._caret, self._roster)
        # Keep the highlight while the user moves within the same trigger
        if state.active and previous.trigger == state.trigger and previous.index < len(state.candidates):
            state.index = previous.index
        self.mention = state
