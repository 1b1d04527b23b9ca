"""Shared fixtures: in-memory database, stub reply generator, fake MinIO."""
import os

# Must be set before the database module creates its engine
os.environ["DATABASE_URL"] = "sqlite://"

import asyncio
from typing import Dict, Optional, Union
from unittest.mock import MagicMock

import pytest

from database import engine, SessionLocal
from models import Base
from schemas.threads import ThreadCreate
from services.attachments import AttachmentStore
from services.reply_generator import GenerationResult
from services.threads import ThreadService


class StubGenerator:
    """Reply generator with canned replies and optional per-input gates."""

    def __init__(self, replies: Optional[Dict[str, Union[str, GenerationResult]]] = None, default: str = "hi there"):
        self.replies = replies or {}
        self.default = default
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls = []

    def gate(self, text: str) -> asyncio.Event:
        """Hold generation for text until the returned event is set."""
        self.gates[text] = asyncio.Event()
        return self.gates[text]

    async def generate(self, text):
        self.calls.append(text)
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        reply = self.replies.get(text, self.default)
        if isinstance(reply, GenerationResult):
            return reply
        return GenerationResult.ok(reply)


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def thread(db):
    return ThreadService.create_thread(db, ThreadCreate(name="Test Thread"))


@pytest.fixture
def stub_generator():
    return StubGenerator()


@pytest.fixture
def minio_client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    return client


@pytest.fixture
def attachment_store(minio_client):
    return AttachmentStore(client=minio_client, bucket_name="test-attachments")
