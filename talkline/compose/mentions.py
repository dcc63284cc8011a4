"""@-mention trigger detection, candidate filtering and insertion."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Participant:
    """A mentionable room member or assistant persona."""

    id: str
    name: str
    email: str = ""
    is_ai: bool = False


# Always offered before the room's human participants
AI_PERSONAS = (
    Participant(id="wayneAI", name="wayneAI", email="ai@wayne.ai", is_ai=True),
    Participant(id="consultingAI", name="consultingAI", email="ai@consulting.ai", is_ai=True),
)


@dataclass(frozen=True)
class MentionTrigger:
    prefix: str  # Text typed after "@"
    trigger_index: int  # Absolute index of the "@"
    caret: int


def _last_unescaped_at(segment: str) -> int:
    i = segment.rfind("@")
    while i != -1:
        if i == 0 or segment[i - 1] != "\\":
            return i
        i = segment.rfind("@", 0, i)
    return -1


def detect_trigger(text: str, caret: int | None = None) -> MentionTrigger | None:
    """Find an active mention on the current line, up to the caret.

    Active iff the line segment before the caret holds an unescaped "@" with
    no whitespace between it and the caret.
    """
    caret = len(text) if caret is None else max(0, min(caret, len(text)))
    line_start = text.rfind("\n", 0, caret) + 1
    segment = text[line_start:caret]

    at = _last_unescaped_at(segment)
    if at == -1:
        return None

    prefix = segment[at + 1:]
    if any(ch.isspace() for ch in prefix):
        return None
    return MentionTrigger(prefix=prefix, trigger_index=line_start + at, caret=caret)


def filter_candidates(roster: list[Participant], prefix: str) -> list[Participant]:
    """Personas first, then the roster; case-insensitive starts-with on name or email."""
    needle = prefix.lower()
    persona_ids = {p.id for p in AI_PERSONAS}
    everyone = list(AI_PERSONAS) + [p for p in roster if p.id not in persona_ids]
    return [
        p for p in everyone
        if p.name.lower().startswith(needle) or p.email.lower().startswith(needle)
    ]


def apply_mention(text: str, trigger: MentionTrigger, participant: Participant) -> tuple[str, int]:
    """Replace "@prefix" with "@{name} ". Returns (new_text, new_caret)."""
    inserted = f"@{participant.name} "
    new_text = text[:trigger.trigger_index] + inserted + text[trigger.caret:]
    return new_text, trigger.trigger_index + len(inserted)


@dataclass
class MentionState:
    """Mention dropdown state for the current caret position."""

    trigger: MentionTrigger | None = None
    candidates: list[Participant] = field(default_factory=list)
    index: int = 0

    @property
    def active(self) -> bool:
        return self.trigger is not None

    @property
    def prefix(self) -> str:
        return self.trigger.prefix if self.trigger else ""

    @property
    def highlighted(self) -> Participant | None:
        if not self.active or not self.candidates:
            return None
        return self.candidates[self.index]

    def move(self, delta: int) -> None:
        """Cycle the highlight over the current candidate list."""
        if not self.candidates:
            return
        self.index = (self.index + delta) % len(self.candidates)

    def clear(self) -> None:
        self.trigger = None
        self.candidates = []
        self.index = 0


def resolve_mention_state(text: str, caret: int, roster: list[Participant]) -> MentionState:
    trigger = detect_trigger(text, caret)
    if trigger is None:
        return MentionState()
    return MentionState(trigger=trigger, candidates=filter_candidates(roster, trigger.prefix))
