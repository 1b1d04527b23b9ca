"""Pydantic schemas for messages and submissions."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict
from uuid import UUID
from models.messages import MessageRole


class MessageResponse(BaseModel):
    """Schema for a message as returned by the read endpoint."""
    id: UUID
    thread_id: UUID
    role: MessageRole
    text: Optional[str]
    attachment_ref: Optional[str]
    pending: bool
    created_at: datetime
    
    model_config = ConfigDict(from_attributes=True)


class SubmissionAck(BaseModel):
    """Acknowledgment returned before the assistant reply is generated."""
    ok: bool = True
    user_message_id: UUID
    assistant_message_id: UUID
