"""Chat module."""

from codechat.chat.models import ChatMessage, Preferences, Sender, Suggestion
from codechat.chat.service import ChatService
from codechat.chat.state import ChatStateStore

__all__ = [
    "ChatMessage",
    "ChatService",
    "ChatStateStore",
    "Preferences",
    "Sender",
    "Suggestion",
]
