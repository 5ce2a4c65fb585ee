"""Chat feature: the consuming side of the event pipeline."""

from .handlers import chat_handlers
from .models import ChatGroupMember

__all__ = ["ChatGroupMember", "chat_handlers"]
