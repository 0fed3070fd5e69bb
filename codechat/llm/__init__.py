"""Chat-completion module."""

from codechat.llm.client import LLMClient, OpenAICompatibleClient
from codechat.llm.models import GenerationResult, Message, Role
from codechat.llm.prompts import ChatPromptTemplate, SearchOutcome

__all__ = [
    "ChatPromptTemplate",
    "GenerationResult",
    "LLMClient",
    "Message",
    "OpenAICompatibleClient",
    "Role",
    "SearchOutcome",
]
