"""Pydantic schemas for thread-related requests and responses."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID


class ThreadCreate(BaseModel):
    """Schema for creating a thread."""
    name: Optional[str] = Field(default="New Thread", max_length=255)


class ThreadUpdate(BaseModel):
    """Schema for renaming a thread."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class ThreadResponse(BaseModel):
    """Schema for thread responses."""
    id: UUID
    name: str
    created_at: datetime
    updated_at: datetime
    
    model_config = ConfigDict(from_attributes=True)
