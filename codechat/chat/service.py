"""Chat turn orchestration.

One turn runs embed -> search -> complete in sequence. Failures never
escape a turn: a broken search is reported to the model as context, and
any other service error becomes a visible ``Error: ...`` reply.
"""

import time

from codechat.catalog.models import ContentTable
from codechat.chat.models import ChatMessage, Preferences, Suggestion
from codechat.chat.state import ChatStateStore
from codechat.embeddings.service import EmbeddingService
from codechat.exceptions import ChatStateError, CodechatError, RetrievalError, ValidationError
from codechat.llm.client import LLMClient
from codechat.llm.prompts import ChatPromptTemplate, SearchOutcome
from codechat.logging_config import get_logger
from codechat.observability.metrics import track_chat_turn
from codechat.retrieval.models import ScoredItem
from codechat.retrieval.retriever import SemanticRetriever

logger = get_logger(__name__)

EMPTY_COMPLETION_REPLY = "Sorry, I could not generate a valid response at this time."


class ChatService:
    """Runs chat turns and owns the persisted transcript."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        retriever: SemanticRetriever,
        llm_client: LLMClient,
        state_store: ChatStateStore,
        prompt_template: ChatPromptTemplate | None = None,
    ) -> None:
        """Initialize the chat service.

        Args:
            embedding_service: Embeds the user's text.
            retriever: Searches and re-ranks content rows.
            llm_client: Produces the reply.
            state_store: Persists transcript and preferences.
            prompt_template: Prompt builder.
        """
        self._embedding_service = embedding_service
        self._retriever = retriever
        self._llm_client = llm_client
        self._store = state_store
        self._prompt_template = prompt_template or ChatPromptTemplate()
        self._messages: list[ChatMessage] = state_store.load_messages()
        self._preferences: Preferences = state_store.load_preferences()

    def history(self) -> list[ChatMessage]:
        """The transcript, oldest first."""
        return list(self._messages)

    def reset(self) -> None:
        """Clear the transcript."""
        self._messages = []
        self._persist_messages()
        logger.info("Chat history reset")

    def preferences(self) -> Preferences:
        return self._preferences.model_copy()

    def update_preferences(
        self,
        selected_version: str | None = None,
        selected_table: ContentTable | None = None,
        filter_by_version: bool | None = None,
    ) -> Preferences:
        """Change any subset of preferences and persist them.

        Raises:
            ValidationError: If the version is blank.
            ChatStateError: If the preferences cannot be saved.
        """
        prefs = self._preferences.model_copy()
        if selected_version is not None:
            if not selected_version.strip():
                raise ValidationError("Version must not be blank")
            prefs.selected_version = selected_version.strip()
        if selected_table is not None:
            prefs.selected_table = selected_table
        if filter_by_version is not None:
            prefs.filter_by_version = filter_by_version

        self._store.save_preferences(prefs)
        self._preferences = prefs
        return prefs.model_copy()

    async def send_message(self, text: str) -> ChatMessage:
        """Run one chat turn.

        Args:
            text: The user's message.

        Returns:
            The assistant's reply (also appended to the transcript).

        Raises:
            ValidationError: If ``text`` is blank.
        """
        if not text.strip():
            raise ValidationError("Message text must not be empty")

        start = time.perf_counter()
        prior = list(self._messages)
        self._append(ChatMessage.from_user(text))

        try:
            reply = await self._answer(text, prior)
            outcome = "answered"
        except CodechatError as e:
            logger.error(
                f"Chat turn failed: {e.message}",
                extra={"error_code": e.code.value},
            )
            reply = ChatMessage.from_assistant(f"Error: {e.message}")
            outcome = "error"

        self._append(reply)
        track_chat_turn(outcome, time.perf_counter() - start)
        return reply

    async def _answer(self, text: str, prior: list[ChatMessage]) -> ChatMessage:
        prefs = self._preferences
        embedding = await self._embedding_service.embed(text)

        suggestions: list[ScoredItem] = []
        if embedding.is_empty:
            outcome = SearchOutcome.NO_EMBEDDING
        else:
            try:
                suggestions = await self._retriever.rank(
                    embedding.embedding,
                    table=prefs.selected_table,
                    version=prefs.version_filter,
                )
                outcome = SearchOutcome.FOUND if suggestions else SearchOutcome.NO_RESULTS
            except RetrievalError as e:
                logger.error(f"Search failed during chat turn: {e.message}")
                outcome = SearchOutcome.SEARCH_FAILED

        context = self._prompt_template.format_context(text, suggestions, outcome)
        messages = self._prompt_template.build_messages(
            history=[m.to_llm_message() for m in prior],
            question=text,
            context=context,
        )

        result = await self._llm_client.generate(messages)
        answer = EMPTY_COMPLETION_REPLY if result.is_empty else result.content

        logger.info(
            "Chat turn answered",
            extra={
                "search_outcome": outcome.value,
                "suggestions": len(suggestions),
                "tokens_used": result.total_tokens,
            },
        )
        return ChatMessage.from_assistant(
            answer,
            [Suggestion.from_scored(s) for s in suggestions],
        )

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self._persist_messages()

    def _persist_messages(self) -> None:
        try:
            self._store.save_messages(self._messages)
        except ChatStateError as e:
            logger.error(f"Chat history not saved: {e.message}")
