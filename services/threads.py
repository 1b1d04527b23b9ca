"""Thread service for CRUD operations."""
from typing import Optional, List, TYPE_CHECKING
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
import logging

from models.threads import Thread
from schemas.threads import ThreadCreate, ThreadUpdate
from services.messages import MessageService

if TYPE_CHECKING:
    from services.attachments import AttachmentStore

logger = logging.getLogger(__name__)


class ThreadService:
    """Service class for thread CRUD operations."""

    @staticmethod
    def create_thread(db: Session, thread_data: ThreadCreate) -> Thread:
        """Create a new thread."""
        db_thread = Thread(name=thread_data.name or "New Thread")

        db.add(db_thread)
        db.commit()
        db.refresh(db_thread)

        return db_thread

    @staticmethod
    def get_thread(db: Session, thread_id: UUID) -> Optional[Thread]:
        """Retrieve a thread by ID."""
        return db.query(Thread).filter(Thread.id == thread_id).first()

    @staticmethod
    def list_threads(db: Session, skip: int = 0, limit: int = 20) -> List[Thread]:
        """Retrieve threads, most recently active first."""
        return db.query(Thread).order_by(
            desc(Thread.updated_at), desc(Thread.created_at)
        ).offset(skip).limit(limit).all()

    @staticmethod
    def update_thread(db: Session, thread_id: UUID, thread_update: ThreadUpdate) -> Optional[Thread]:
        """Rename a thread."""
        thread = ThreadService.get_thread(db, thread_id)

        if not thread:
            return None

        if thread_update.name is not None:
            thread.name = thread_update.name

        db.commit()
        db.refresh(thread)

        return thread

    @staticmethod
    def touch(db: Session, thread: Thread) -> None:
        """Mark activity on a thread without committing."""
        thread.updated_at = func.now()

    @staticmethod
    def delete_thread(
        db: Session,
        thread_id: UUID,
        attachment_store: Optional["AttachmentStore"] = None
    ) -> bool:
        """
        Delete a thread together with its messages.

        Attachment blobs are removed after the database commit; failures
        there are logged and ignored.
        """
        thread = ThreadService.get_thread(db, thread_id)

        if not thread:
            return False

        refs = MessageService.delete_by_thread(db, thread_id, commit=False)
        db.delete(thread)
        db.commit()

        logger.info(f"Deleted thread {thread_id} with {len(refs)} attachments")

        if attachment_store is not None:
            for ref in refs:
                attachment_store.delete(ref)

        return True
