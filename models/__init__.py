from .threads import Thread, Base
from .messages import Message, MessageRole

__all__ = ["Thread", "Message", "MessageRole", "Base"]
