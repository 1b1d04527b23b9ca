"""Thread model for conversation management."""
from sqlalchemy import Column, String, DateTime, Uuid, func
from sqlalchemy.orm import declarative_base, relationship
from uuid import uuid4

Base = declarative_base()


class Thread(Base):
    """
    SQLAlchemy model for conversation threads.
    
    Each thread is a named conversation between a user and the AI.
    updated_at doubles as the last-activity timestamp used to order the
    thread list.
    """
    __tablename__ = "threads"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4, index=True)
    name = Column(String(255), nullable=False, default="New Thread")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationship to messages
    messages = relationship(
        "Message",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
