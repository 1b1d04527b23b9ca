from fastapi import FastAPI, Depends, HTTPException, Query, Request, status, UploadFile, File, Form
from fastapi.responses import StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from io import BytesIO
import os
from typing import List, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

# Local imports
from database import get_db, engine, SessionLocal
from models import Base
from schemas import ThreadCreate, ThreadUpdate, ThreadResponse, MessageResponse, SubmissionAck
from services import ThreadService, MessageService, ReplyGenerator, ConversationOrchestrator, AttachmentStore
from services.errors import ChatError, ValidationError, ThreadNotFoundError
from sqlalchemy.orm import Session
from sqlalchemy import text



@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)

    # Collaborators may be provided up front (tests, embedding apps)
    if getattr(app.state, "attachment_store", None) is None:
        app.state.attachment_store = AttachmentStore()
    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = ConversationOrchestrator(SessionLocal, ReplyGenerator())

    yield

    # Let in-flight replies land before shutting down
    pending = app.state.orchestrator.in_flight
    if pending:
        logger.info(f"Waiting for {pending} in-flight replies")
    await app.state.orchestrator.drain()


app = FastAPI(
    title="Threaded Chat",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins if origins != ["*"] else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600
)


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator


def get_attachment_store(request: Request) -> AttachmentStore:
    return request.app.state.attachment_store


@app.get("/")
async def root():
    return {"message": "Hello World", "status": "running"}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "threaded-chat"}


@app.get("/health/detailed")
async def detailed_health_check(
    db: Session = Depends(get_db),
    attachment_store: AttachmentStore = Depends(get_attachment_store),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator)
):
    """Comprehensive health check for all services."""
    health_status = {
        "status": "healthy",
        "service": "threaded-chat",
        "checks": {}
    }

    # Check database connection
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy", "dialect": db.bind.dialect.name}
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    # Check MinIO connection
    try:
        buckets = attachment_store.client.list_buckets()
        health_status["checks"]["minio"] = {"status": "healthy", "buckets": len(buckets)}
    except Exception as e:
        health_status["checks"]["minio"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "degraded"

    health_status["checks"]["replies"] = {"in_flight": orchestrator.in_flight}

    return health_status


# Thread management endpoints
@app.post("/threads", response_model=ThreadResponse)
async def create_thread(
    thread: ThreadCreate,
    db: Session = Depends(get_db)
) -> ThreadResponse:
    """Create a new conversation thread."""
    db_thread = ThreadService.create_thread(db=db, thread_data=thread)

    return ThreadResponse.model_validate(db_thread)


@app.get("/threads", response_model=List[ThreadResponse])
async def list_threads(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
) -> List[ThreadResponse]:
    """List threads, most recently active first."""
    threads = ThreadService.list_threads(db=db, skip=skip, limit=limit)

    return [ThreadResponse.model_validate(thread) for thread in threads]


@app.get("/threads/{thread_id}", response_model=ThreadResponse)
async def get_thread(
    thread_id: UUID,
    db: Session = Depends(get_db)
) -> ThreadResponse:
    """Get a specific thread by ID."""
    thread = ThreadService.get_thread(db=db, thread_id=thread_id)

    if not thread:
        raise HTTPException(status_code=404, detail="Thread not found")

    return ThreadResponse.model_validate(thread)


@app.patch("/threads/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: UUID,
    thread_update: ThreadUpdate,
    db: Session = Depends(get_db)
) -> ThreadResponse:
    """Rename a thread."""
    updated_thread = ThreadService.update_thread(
        db=db,
        thread_id=thread_id,
        thread_update=thread_update
    )

    if not updated_thread:
        raise HTTPException(status_code=404, detail="Thread not found")

    return ThreadResponse.model_validate(updated_thread)


@app.delete("/threads/{thread_id}")
async def delete_thread(
    thread_id: UUID,
    db: Session = Depends(get_db),
    attachment_store: AttachmentStore = Depends(get_attachment_store)
) -> dict:
    """Delete a thread, its messages and their images."""
    deleted = ThreadService.delete_thread(
        db=db,
        thread_id=thread_id,
        attachment_store=attachment_store
    )

    if not deleted:
        raise HTTPException(status_code=404, detail="Thread not found")

    return {"ok": True}


# Message endpoints
@app.get("/threads/{thread_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    thread_id: UUID,
    db: Session = Depends(get_db)
) -> List[MessageResponse]:
    """Return the full, ordered message list of a thread."""
    if not ThreadService.get_thread(db=db, thread_id=thread_id):
        raise HTTPException(status_code=404, detail="Thread not found")

    messages = MessageService.list_by_thread(db=db, thread_id=thread_id)

    return [MessageResponse.model_validate(message) for message in messages]


@app.post("/messages", response_model=SubmissionAck, status_code=status.HTTP_202_ACCEPTED)
async def submit_message(
    thread_id: UUID = Form(...),
    text: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    attachment_store: AttachmentStore = Depends(get_attachment_store)
) -> SubmissionAck:
    """
    Submit a user message.

    Responds as soon as the message and its pending reply are stored; the
    reply text shows up on a later read of the thread.
    """
    has_image = image is not None and bool(image.filename)

    if not (text and text.strip()) and not has_image:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A message needs text or an image"
        )

    attachment_ref = None
    if has_image:
        file_content = await image.read()
        try:
            attachment_ref = attachment_store.upload(
                file_data=BytesIO(file_content),
                filename=image.filename,
                file_size=len(file_content),
                content_type=image.content_type
            )
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        except Exception as e:
            logger.error(f"Failed to store image: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Failed to store image"
            )

    try:
        return await orchestrator.submit(
            db=db,
            thread_id=thread_id,
            text=text,
            attachment_ref=attachment_ref
        )
    except ChatError as e:
        # Nothing references the image now
        if attachment_ref:
            attachment_store.delete(attachment_ref)

        if isinstance(e, ThreadNotFoundError):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Thread not found"
            )
        if isinstance(e, ValidationError):
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(e)
            )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )


# Attachment endpoints
@app.get("/attachments/{ref}")
async def download_attachment(
    ref: str,
    attachment_store: AttachmentStore = Depends(get_attachment_store)
):
    """Stream a stored image."""
    content = attachment_store.download(ref)

    if content is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Attachment not found"
        )

    return StreamingResponse(
        BytesIO(content),
        media_type=AttachmentStore.content_type_for(ref)
    )


@app.delete("/attachments/{ref}")
async def delete_attachment(
    ref: str,
    attachment_store: AttachmentStore = Depends(get_attachment_store)
) -> dict:
    """Best-effort removal of an image, e.g. one discarded before sending."""
    return {"ok": attachment_store.delete(ref)}
