"""Message model for conversation turns."""
from sqlalchemy import Column, String, DateTime, Integer, Text, Boolean, ForeignKey, Enum, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from uuid import uuid4
from .threads import Base
import enum


class MessageRole(enum.Enum):
    """Enum for the author of a message."""
    USER = "user"
    ASSISTANT = "assistant"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(Base):
    """
    SQLAlchemy model for a single turn in a thread.
    
    Assistant messages created for a submission start with pending=True and
    are resolved exactly once. sequence breaks ties between messages created
    within the same clock tick.
    """
    __tablename__ = "messages"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, index=True)
    thread_id = Column(Uuid(as_uuid=True), ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)  # Per-thread insertion order
    role = Column(Enum(MessageRole), nullable=False)
    text = Column(Text, nullable=True)
    attachment_ref = Column(String, nullable=True)  # Object name in the attachment store
    pending = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    
    thread = relationship("Thread", back_populates="messages")
    
    __table_args__ = (
        UniqueConstraint("thread_id", "sequence", name="uq_messages_thread_sequence"),
    )
