"""Message store: append, targeted update and ordered listing."""
from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import func, select

from models.messages import Message, MessageRole
from services.errors import MessageNotFoundError, MessageAlreadyResolvedError

# Only these fields may change after a message is created
UPDATABLE_FIELDS = {"text", "pending"}


class MessageService:
    """Service class for message persistence."""

    @staticmethod
    def next_sequence(db: Session, thread_id: UUID) -> int:
        """Return the sequence number for the next message in a thread."""
        current = db.execute(
            select(func.max(Message.sequence)).where(Message.thread_id == thread_id)
        ).scalar()
        return (current or 0) + 1

    @staticmethod
    def append(
        db: Session,
        thread_id: UUID,
        role: MessageRole,
        text: Optional[str] = None,
        attachment_ref: Optional[str] = None,
        pending: bool = False,
        commit: bool = True
    ) -> Message:
        """
        Insert a new message at the end of a thread.

        Args:
            db: Database session
            thread_id: Owning thread
            role: Author of the message
            text: Optional text content
            attachment_ref: Optional attachment reference (user messages only)
            pending: Whether the message awaits generation
            commit: Commit immediately; pass False to stage several appends
                in one transaction

        Returns:
            The flushed Message with its id assigned
        """
        if role == MessageRole.ASSISTANT and attachment_ref is not None:
            raise ValueError("Assistant messages cannot carry attachments")

        message = Message(
            thread_id=thread_id,
            sequence=MessageService.next_sequence(db, thread_id),
            role=role,
            text=text,
            attachment_ref=attachment_ref,
            pending=pending
        )

        db.add(message)
        # Flush so the next append in this transaction sees the new sequence
        db.flush()

        if commit:
            db.commit()
            db.refresh(message)

        return message

    @staticmethod
    def get_message(db: Session, message_id: UUID) -> Optional[Message]:
        """Retrieve a message by ID."""
        return db.query(Message).filter(Message.id == message_id).first()

    @staticmethod
    def update_by_id(db: Session, message_id: UUID, fields: Dict[str, Any]) -> Message:
        """
        Apply a partial update to a pending message.

        Raises:
            ValueError: If fields other than text/pending are given, or pending
                would be set back to True
            MessageNotFoundError: If the message does not exist
            MessageAlreadyResolvedError: If the message was already resolved
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update message fields: {', '.join(sorted(unknown))}")

        if fields.get("pending") is True:
            raise ValueError("A message cannot be marked pending after creation")

        message = MessageService.get_message(db, message_id)
        if not message:
            raise MessageNotFoundError(f"Message {message_id} not found")

        if not message.pending:
            raise MessageAlreadyResolvedError(f"Message {message_id} is already resolved")

        for key, value in fields.items():
            setattr(message, key, value)

        db.commit()
        db.refresh(message)

        return message

    @staticmethod
    def list_by_thread(db: Session, thread_id: UUID) -> List[Message]:
        """Retrieve all messages of a thread in creation order."""
        return db.query(Message).filter(
            Message.thread_id == thread_id
        ).order_by(
            Message.created_at, Message.sequence
        ).populate_existing().all()

    @staticmethod
    def delete_by_thread(db: Session, thread_id: UUID, commit: bool = True) -> List[str]:
        """
        Delete all messages of a thread.

        Returns:
            Attachment references of the deleted messages
        """
        messages = db.query(Message).filter(Message.thread_id == thread_id).all()
        refs = [m.attachment_ref for m in messages if m.attachment_ref]

        for message in messages:
            db.delete(message)

        if commit:
            db.commit()

        return refs
