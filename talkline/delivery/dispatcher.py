"""Delivery dispatcher: packages drafts, sends them and classifies outcomes."""

import asyncio
from typing import Any, Callable

from loguru import logger

from talkline.auth.session import SessionProvider
from talkline.bus.events import (
    CHAT_MESSAGE,
    ERROR,
    FETCH_PREVIOUS_MESSAGES,
    PREVIOUS_MESSAGES_LOADED,
    ChatMessage,
    FileData,
    HistoryRequest,
)
from talkline.channels.base import TransportChannel
from talkline.compose.input_state import Draft, DraftStatus, InputStateManager
from talkline.delivery import notices
from talkline.delivery.notices import Notice, Notifier, log_notifier
from talkline.delivery.tickets import DeliveryResult, DeliveryTicket, Outcome
from talkline.errors import (
    DeliveryTimeout,
    SessionExpired,
    TalklineError,
    describe_failure,
    is_session_error,
)
from talkline.media.attachment import AttachmentController, PendingAttachment

HISTORY_TIMEOUT = 10.0  # Seconds

# Precondition and local failure reasons
NOT_CONNECTED = "not-connected"
NO_ROOM = "no-room"
EMPTY_DRAFT = "empty-draft"
BUSY = "busy"
ATTACHMENT_RELEASED = "attachment-released"
TIMEOUT = "timeout"

OutcomeCallback = Callable[[DeliveryTicket], None]


class _AttachmentReleased(Exception):
    """The attachment was removed while its upload was in flight."""


class DeliveryDispatcher:
    """
    Turns a finalized draft into a chatMessage event.

    Every attempt is tracked by a DeliveryTicket. A failure that looks like
    an invalidated session triggers one renewal and a single retry with a
    new ticket; anything else is reported through the notifier.
    """

    def __init__(
        self,
        channel: TransportChannel,
        session: SessionProvider,
        attachments: AttachmentController,
        input_state: InputStateManager | None = None,
        notifier: Notifier | None = None,
        history_timeout: float = HISTORY_TIMEOUT,
        on_outcome: OutcomeCallback | None = None,
    ):
        self.channel = channel
        self.session = session
        self.attachments = attachments
        self.input_state = input_state
        self.notifier = notifier or log_notifier
        self.history_timeout = history_timeout
        self._on_outcome = on_outcome
        self._history_ticket: DeliveryTicket | None = None
        self._sending = False

    @property
    def sending(self) -> bool:
        return self._sending

    @property
    def loading_history(self) -> bool:
        return self._history_ticket is not None

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send(self, draft: Draft, room_id: str | None) -> DeliveryResult:
        """Send a draft to a room.

        Precondition failures return a failed result without creating a
        ticket. On success the draft and composer are cleared and the
        attachment is released.
        """
        if not self.channel.connected or self.session.get_current_user() is None:
            logger.error("Cannot send message: channel not connected")
            self._notify(notices.ERROR, notices.DISCONNECTED)
            return DeliveryResult(Outcome.failed, NOT_CONNECTED)
        if not room_id:
            self._notify(notices.ERROR, notices.NO_ROOM)
            return DeliveryResult(Outcome.failed, NO_ROOM)
        if not draft.is_sendable:
            return DeliveryResult(Outcome.failed, EMPTY_DRAFT)
        if self._sending or draft.status == DraftStatus.dispatching:
            logger.warning("A message is already being sent, skipping submit")
            return DeliveryResult(Outcome.failed, BUSY)

        attachment = draft.attachment if draft.attachment and draft.attachment.is_sendable else None
        message = ChatMessage(room=room_id, content=draft.text.strip())
        payload = message.to_payload()
        if attachment:
            payload["type"] = "file"

        self._sending = True
        draft.status = DraftStatus.dispatching
        try:
            ticket = DeliveryTicket(room_id=room_id, payload=payload, event=CHAT_MESSAGE)
            result = await self._dispatch(ticket, attachment, room_id)
            if result.outcome == Outcome.session_expired and await self._renew():
                retry = ticket.retry()
                logger.info(f"Session renewed, retrying message as ticket {retry.id}")
                result = await self._dispatch(retry, attachment, room_id, final=True)
            elif result.outcome == Outcome.session_expired:
                self._notify(notices.ERROR, notices.SESSION_EXPIRED)
        finally:
            self._sending = False
            draft.status = DraftStatus.idle

        if result.ok:
            self._clear(draft)
        else:
            draft.refresh_status()
        return result

    async def _dispatch(
        self,
        ticket: DeliveryTicket,
        attachment: PendingAttachment | None,
        room_id: str,
        final: bool = False,
    ) -> DeliveryResult:
        """One delivery attempt. Never raises; the ticket carries the outcome."""
        try:
            if attachment and "fileData" not in ticket.payload:
                remote = await self._upload(attachment, room_id)
                ticket.payload["fileData"] = FileData.from_upload(remote).to_payload()
            logger.debug(f"Sending {ticket.payload['type']} message to room {room_id} (ticket {ticket.id})")
            await self.channel.emit(CHAT_MESSAGE, ticket.payload)
        except _AttachmentReleased:
            self._resolve(ticket, Outcome.failed, ATTACHMENT_RELEASED)
            return DeliveryResult.from_ticket(ticket)
        except Exception as e:
            text = _error_text(e)
            logger.error(f"Message submit error: {text}")
            self._report_stored_file(attachment, text)

            if isinstance(e, SessionExpired) or is_session_error(text):
                self._resolve(ticket, Outcome.session_expired, text)
                if final:
                    self._notify(notices.ERROR, notices.SESSION_EXPIRED)
                return DeliveryResult.from_ticket(ticket)

            self._resolve(ticket, Outcome.failed, text)
            self._notify(notices.ERROR, describe_failure(text))
            return DeliveryResult.from_ticket(ticket)

        self._resolve(ticket, Outcome.acknowledged)
        logger.info(f"Message delivered to room {room_id} (ticket {ticket.id})")
        if attachment:
            self._notify(notices.SUCCESS, notices.FILE_UPLOADED)
        return DeliveryResult.from_ticket(ticket)

    async def _upload(self, attachment: PendingAttachment, room_id: str):
        if attachment is not self.attachments.current:
            raise _AttachmentReleased()
        remote = await self.attachments.upload(room_id)
        if remote is None:
            raise _AttachmentReleased()
        return remote

    async def _renew(self) -> bool:
        logger.warning("Session rejected by server, attempting renewal")
        try:
            return await self.session.renew()
        except Exception as e:
            logger.error(f"Session renewal raised: {e}")
            return False

    def _report_stored_file(self, attachment: PendingAttachment | None, text: str) -> None:
        """The upload went through but the message did not."""
        if attachment is None or attachment.remote is None:
            return
        logger.warning(
            "File uploaded but message failed: url={} error={}", attachment.remote.url, text
        )
        self._notify(notices.ERROR, notices.FILE_STORED_NOT_SENT)

    def _clear(self, draft: Draft) -> None:
        if draft.attachment is not None and draft.attachment is self.attachments.current:
            self.attachments.detach()
        draft.text = ""
        draft.attachment = None
        draft.refresh_status()
        if self.input_state:
            self.input_state.clear()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def fetch_history(self, room_id: str | None, before: str | None = None) -> DeliveryResult:
        """Request older messages; resolves on the first reply, error or timeout."""
        if not self.channel.connected:
            return DeliveryResult(Outcome.failed, NOT_CONNECTED)
        if not room_id:
            return DeliveryResult(Outcome.failed, NO_ROOM)
        if self._history_ticket is not None:
            logger.warning("Already loading messages, skipping request")
            return DeliveryResult(Outcome.failed, BUSY)

        request = HistoryRequest(room_id=room_id, before=before)
        ticket = DeliveryTicket(
            room_id=room_id, payload=request.to_payload(), event=FETCH_PREVIOUS_MESSAGES
        )
        future: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_loaded(data: Any) -> None:
            if not future.done():
                future.set_result((True, data))

        def on_error(data: Any) -> None:
            if not future.done():
                future.set_result((False, data))

        self._history_ticket = ticket
        self.channel.once(PREVIOUS_MESSAGES_LOADED, on_loaded)
        self.channel.once(ERROR, on_error)
        try:
            await self.channel.emit(FETCH_PREVIOUS_MESSAGES, ticket.payload)
            ok, data = await asyncio.wait_for(future, timeout=self.history_timeout)
        except asyncio.TimeoutError:
            error = DeliveryTimeout(
                TIMEOUT, f"No reply to {FETCH_PREVIOUS_MESSAGES} for room {room_id} within {self.history_timeout}s"
            )
            logger.warning(error.detail)
            self._resolve(ticket, Outcome.timed_out, TIMEOUT, result=error)
            self._notify(notices.ERROR, notices.HISTORY_TIMEOUT)
        except Exception as e:
            await self._history_failed(ticket, _error_text(e), isinstance(e, SessionExpired))
        else:
            if ok:
                self._resolve(ticket, Outcome.acknowledged, result=data)
            else:
                await self._history_failed(ticket, _error_text(data))
        finally:
            self.channel.off(PREVIOUS_MESSAGES_LOADED, on_loaded)
            self.channel.off(ERROR, on_error)
            self._history_ticket = None

        return DeliveryResult.from_ticket(ticket)

    async def _history_failed(self, ticket: DeliveryTicket, text: str, expired: bool = False) -> None:
        logger.error(f"Load more messages error: {text}")
        if expired or is_session_error(text):
            self._resolve(ticket, Outcome.session_expired, text)
            if await self._renew():
                logger.info("Session renewed, history can be requested again")
            else:
                self._notify(notices.ERROR, notices.SESSION_EXPIRED)
            return
        self._resolve(ticket, Outcome.failed, text)
        self._notify(notices.ERROR, notices.HISTORY_FAILED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, ticket: DeliveryTicket, outcome: Outcome, reason: str = "", result: Any = None) -> None:
        if ticket.resolve(outcome, reason, result) and self._on_outcome:
            self._on_outcome(ticket)

    def _notify(self, level: str, message: str) -> None:
        self.notifier(Notice(level=level, message=message))


def _error_text(error: Any) -> str:
    """Readable text of an exception or an error event payload."""
    if isinstance(error, TalklineError):
        return error.detail or error.short_message
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    if isinstance(error, dict):
        return str(error.get("message") or error.get("error") or error)
    return str(error or "unknown error")
