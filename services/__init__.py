from .threads import ThreadService
from .messages import MessageService
from .reply_generator import ReplyGenerator, GenerationResult
from .conversation import ConversationOrchestrator
from .attachments import AttachmentStore

__all__ = ["ThreadService", "MessageService", "ReplyGenerator", "GenerationResult",
           "ConversationOrchestrator", "AttachmentStore"]
