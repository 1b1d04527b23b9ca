"""Domain exceptions raised by the chat services."""


class ChatError(Exception):
    """Base class for chat service errors."""


class ValidationError(ChatError):
    """A submission or request was rejected before anything was written."""


class ThreadNotFoundError(ChatError):
    """The referenced thread does not exist."""


class MessageNotFoundError(ChatError):
    """The referenced message does not exist."""


class MessageAlreadyResolvedError(ChatError):
    """An update targeted a message that is no longer pending."""


class StorageError(ChatError):
    """The storage layer failed; the current operation did not commit."""
