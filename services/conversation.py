"""Conversation orchestration: pair writes now, replies later."""
import asyncio
import logging
from typing import Optional, Set, Callable
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from models.messages import MessageRole
from schemas.messages import SubmissionAck
from services.errors import ValidationError, ThreadNotFoundError, StorageError, ChatError
from services.messages import MessageService
from services.reply_generator import ReplyGenerator, GenerationResult
from services.threads import ThreadService

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "⏳ Thinking..."
FAILURE_PREFIX = "⚠️ "


class ConversationOrchestrator:
    """
    Accepts submissions and resolves assistant placeholders in the background.

    The synchronous phase writes the user message and a pending assistant
    message in one transaction. The reply is produced by a detached task that
    only knows the placeholder's id and updates that row once.
    """

    def __init__(self, session_factory: Callable[[], Session], reply_generator: ReplyGenerator):
        self.session_factory = session_factory
        self.reply_generator = reply_generator
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def submit(
        self,
        db: Session,
        thread_id: UUID,
        text: Optional[str] = None,
        attachment_ref: Optional[str] = None
    ) -> SubmissionAck:
        """
        Store a user submission and its pending reply, then return at once.

        Raises:
            ValidationError: If neither text nor attachment is given
            ThreadNotFoundError: If the thread does not exist
            StorageError: If the pair could not be written
        """
        if text is not None and not text.strip():
            text = None

        if text is None and not attachment_ref:
            raise ValidationError("A message needs text or an image")

        try:
            thread = ThreadService.get_thread(db, thread_id)
            if not thread:
                raise ThreadNotFoundError(f"Thread {thread_id} not found")

            user_msg = MessageService.append(
                db, thread_id, MessageRole.USER,
                text=text, attachment_ref=attachment_ref, commit=False
            )
            wait_msg = MessageService.append(
                db, thread_id, MessageRole.ASSISTANT,
                text=PLACEHOLDER_TEXT, pending=True, commit=False
            )
            ack = SubmissionAck(user_message_id=user_msg.id, assistant_message_id=wait_msg.id)
            ThreadService.touch(db, thread)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store submission for thread {thread_id}: {e}")
            raise StorageError("Could not store the message") from e

        logger.info(f"Accepted submission on thread {thread_id}, placeholder {ack.assistant_message_id}")

        self.dispatch(ack.assistant_message_id, text)
        return ack

    def dispatch(self, message_id: UUID, text: Optional[str]) -> asyncio.Task:
        """Start resolving a placeholder without waiting for it."""
        task = asyncio.create_task(self.resolve(message_id, text))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def resolve(self, message_id: UUID, text: Optional[str]) -> None:
        """Generate a reply and write it into the given placeholder."""
        try:
            result = await self.reply_generator.generate(text)
        except Exception as e:
            logger.error(f"Reply generator raised for message {message_id}: {e}")
            result = GenerationResult.failed(f"The assistant could not reply ({type(e).__name__}).")

        if result.success:
            fields = {"text": result.content, "pending": False}
        else:
            fields = {"text": FAILURE_PREFIX + result.reason, "pending": False}

        db = self.session_factory()
        try:
            MessageService.update_by_id(db, message_id, fields)
            logger.info(f"Resolved message {message_id} (success={result.success})")
        except (SQLAlchemyError, ChatError) as e:
            db.rollback()
            # The placeholder stays pending; the user can submit again
            logger.error(f"Failed to resolve message {message_id}: {e}")
        finally:
            db.close()

    async def drain(self) -> None:
        """Wait for every in-flight generation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
