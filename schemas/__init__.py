from .threads import ThreadCreate, ThreadUpdate, ThreadResponse
from .messages import MessageResponse, SubmissionAck

__all__ = ["ThreadCreate", "ThreadUpdate", "ThreadResponse",
           "MessageResponse", "SubmissionAck"]
