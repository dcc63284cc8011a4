"""Chat client: wires composition, attachments and delivery for one user."""

from pathlib import Path

from loguru import logger

from talkline.auth.session import FileSessionProvider, SessionProvider
from talkline.channels.base import TransportChannel
from talkline.channels.websocket import WebSocketChannel
from talkline.compose.input_state import Draft, InputStateManager
from talkline.compose.keys import Key
from talkline.compose.mentions import Participant
from talkline.config.schema import Config
from talkline.delivery.dispatcher import DeliveryDispatcher
from talkline.delivery.notices import Notifier
from talkline.delivery.tickets import DeliveryResult
from talkline.media.attachment import AttachmentController, CandidateFile, PendingAttachment
from talkline.media.paths import PathResolver
from talkline.media.storage import HttpStorageBackend, ProgressCallback, StorageBackend


class ChatClient:
    """
    One signed-in user composing messages in one room at a time.

    Collaborators default to the concrete implementations built from
    config; tests and embedders pass their own.
    """

    def __init__(
        self,
        config: Config,
        session: SessionProvider | None = None,
        channel: TransportChannel | None = None,
        storage: StorageBackend | None = None,
        notifier: Notifier | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        self.config = config
        self.session = session or FileSessionProvider(config.session_file)
        self.channel = channel or WebSocketChannel(config.transport, self.session)
        self.storage = storage or HttpStorageBackend(config.storage, self.session)
        self.paths = PathResolver(config.storage, self.session, self.storage, config.thumbnails)
        self.attachments = AttachmentController(self.storage, on_progress=on_progress)
        self.input = InputStateManager()
        self.dispatcher = DeliveryDispatcher(
            self.channel,
            self.session,
            self.attachments,
            input_state=self.input,
            notifier=notifier,
            history_timeout=config.transport.history_timeout,
        )
        self.room_id: str | None = None

    @property
    def draft(self) -> Draft:
        return self.input.draft(self.attachments.current)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.channel.connect()

    async def stop(self) -> None:
        self.attachments.close()
        await self.channel.close()

    async def __aenter__(self) -> "ChatClient":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def join(self, room_id: str, participants: list[Participant] | None = None) -> None:
        """Switch rooms. The draft and any pending attachment are discarded."""
        if self.room_id and self.room_id != room_id:
            self.attachments.remove()
            self.input.clear()
        self.room_id = room_id
        self.input.set_roster(participants or [])
        logger.debug(f"Joined room {room_id} with {len(participants or [])} participants")

    def set_text(self, text: str, caret: int | None = None) -> None:
        self.input.set_text(text, caret)

    def attach(self, file: CandidateFile) -> PendingAttachment:
        return self.attachments.select(file)

    def attach_path(self, path: str | Path) -> PendingAttachment:
        return self.attachments.select(CandidateFile.from_path(path))

    async def press(self, key: Key) -> DeliveryResult | None:
        """Feed a key to the composer; Enter on a sendable draft submits it."""
        result = self.input.handle_key(key, has_attachment=self.attachments.current is not None)
        if result.submit:
            return await self.submit()
        return None

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def submit(self) -> DeliveryResult:
        return await self.dispatcher.send(self.draft, self.room_id)

    async def load_more(self, before: str | None = None) -> DeliveryResult:
        return await self.dispatcher.fetch_history(self.room_id, before)
