"""Tests for the input state manager and drafts."""

from unittest.mock import MagicMock

from talkline.compose.input_state import Draft, DraftStatus, InputStateManager
from talkline.compose.keys import Key, parse_key
from talkline.compose.mentions import AI_PERSONAS, Participant
from talkline.media.attachment import AttachmentState, CandidateFile, PendingAttachment

WAYNE = Participant(id="u1", name="Wayne Kim", email="wayne@corp.com")


def _manager():
    return InputStateManager(roster=[WAYNE])


class TestMentionFlow:
    def test_select_after_navigation(self):
        mgr = _manager()
        mgr.set_text("@way", 4)
        assert [p.name for p in mgr.mention.candidates] == ["wayneAI", "Wayne Kim"]

        assert mgr.handle_key(Key.DOWN).handled
        assert mgr.mention.highlighted == WAYNE
        assert mgr.handle_key(Key.ENTER).submit is False

        assert mgr.text == "@Wayne Kim "
        assert mgr.caret == 11
        assert not mgr.mention.active

    def test_select_is_not_repeated(self):
        mgr = _manager()
        mgr.set_text("@way")
        assert mgr.select_mention(WAYNE)
        assert not mgr.select_mention(WAYNE)
        assert mgr.text == "@Wayne Kim "

    def test_tab_selects_highlighted(self):
        mgr = _manager()
        mgr.set_text("hello @con")
        mgr.handle_key(Key.TAB)
        assert mgr.text == "hello @consultingAI "

    def test_escape_closes_list(self):
        mgr = _manager()
        mgr.set_text("@w")
        assert mgr.handle_key(Key.ESC).handled
        assert not mgr.mention.active
        assert mgr.text == "@w"

    def test_up_wraps_to_last(self):
        mgr = _manager()
        mgr.set_text("@")
        mgr.handle_key(Key.UP)
        assert mgr.mention.highlighted == WAYNE

    def test_highlight_kept_while_typing_same_trigger(self):
        mgr = _manager()
        mgr.set_text("@")
        mgr.handle_key(Key.DOWN)
        mgr.move_caret(1)
        assert mgr.mention.highlighted == AI_PERSONAS[1]

    def test_enter_and_tab_without_candidates_are_consumed(self):
        mgr = _manager()
        mgr.set_text("mail me @zzz")
        assert mgr.mention.active
        assert mgr.mention.candidates == []

        for key in (Key.ENTER, Key.TAB):
            result = mgr.handle_key(key)
            assert result.handled
            assert not result.submit
        assert mgr.text == "mail me @zzz"
        assert mgr.mention.active

    def test_escape_without_candidates_closes_mention(self):
        mgr = _manager()
        mgr.set_text("mail me @zzz")
        assert mgr.handle_key(Key.ESC).handled
        assert not mgr.mention.active
        assert mgr.text == "mail me @zzz"
        assert mgr.handle_key(Key.ENTER).submit

    def test_arrows_without_candidates_are_noops(self):
        mgr = _manager()
        mgr.set_text("@zzz")
        assert mgr.handle_key(Key.DOWN).handled
        assert mgr.handle_key(Key.UP).handled
        assert mgr.mention.index == 0
        assert mgr.mention.highlighted is None


class TestKeys:
    def test_enter_submits_text(self):
        mgr = _manager()
        mgr.set_text("hi")
        assert mgr.handle_key(Key.ENTER).submit

    def test_enter_on_blank_text(self):
        mgr = _manager()
        mgr.set_text("   ")
        assert not mgr.handle_key(Key.ENTER).submit
        assert mgr.handle_key(Key.ENTER, has_attachment=True).submit

    def test_shift_enter_inserts_newline(self):
        mgr = _manager()
        mgr.set_text("ab", 1)
        mgr.handle_key(Key.SHIFT_ENTER)
        assert mgr.text == "a\nb"
        assert mgr.caret == 2

    def test_parse_key(self):
        assert parse_key("ArrowDown") == Key.DOWN
        assert parse_key("Enter", shift=True) == Key.SHIFT_ENTER
        assert parse_key("x") == Key.CHAR


class TestEdits:
    def test_wrap_selection(self):
        mgr = _manager()
        mgr.set_text("make bold")
        caret = mgr.apply_markdown("**", 5, 9)
        assert mgr.text == "make **bold**"
        assert caret == 11

    def test_prefix_snippet(self):
        mgr = _manager()
        mgr.set_text("item")
        caret = mgr.apply_markdown("- ", 0, 4)
        assert mgr.text == "- item"
        assert caret == 6

    def test_block_snippet_empty_selection(self):
        mgr = _manager()
        mgr.set_text("")
        caret = mgr.apply_markdown("```\n\n```")
        assert mgr.text == "```\n\n```"
        assert caret == 4

    def test_block_snippet_wraps_selection(self):
        mgr = _manager()
        mgr.set_text("x = 1")
        mgr.apply_markdown("```\n\n```", 0, 5)
        assert mgr.text == "```\nx = 1\n```"

    def test_insert_emoji_at_caret(self):
        mgr = _manager()
        mgr.set_text("hi there", 2)
        mgr.insert_emoji("👋")
        assert mgr.text == "hi👋 there"
        assert mgr.caret == 3

    def test_on_change_called(self):
        on_change = MagicMock()
        mgr = InputStateManager(on_change=on_change)
        mgr.set_text("a")
        on_change.assert_called_once_with("a")

    def test_clear(self):
        mgr = _manager()
        mgr.set_text("@w")
        mgr.clear()
        assert mgr.text == ""
        assert mgr.caret == 0
        assert not mgr.mention.active


class TestDraft:
    def _attachment(self, state, validated=True):
        file = CandidateFile(name="a.png", mime_type="image/png", data=b"x")
        return PendingAttachment(file=file, state=state, validated=validated)

    def test_empty_draft_is_idle(self):
        draft = Draft(text="   ")
        assert not draft.is_sendable
        assert draft.status == DraftStatus.idle

    def test_text_draft_is_ready(self):
        assert Draft(text="hi").status == DraftStatus.ready

    def test_validated_attachment_is_sendable(self):
        assert Draft(attachment=self._attachment(AttachmentState.preview_ready)).is_sendable

    def test_rejected_attachment_is_not_sendable(self):
        attachment = self._attachment(AttachmentState.failed, validated=False)
        assert not Draft(attachment=attachment).is_sendable

    def test_released_attachment_is_not_sendable(self):
        assert not Draft(attachment=self._attachment(AttachmentState.released)).is_sendable

    def test_snapshot_from_manager(self):
        mgr = _manager()
        mgr.set_text("hello")
        draft = mgr.draft()
        assert draft.text == "hello"
        assert draft.attachment is None
