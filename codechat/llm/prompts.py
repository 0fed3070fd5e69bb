"""Prompt construction for retrieval-augmented chat."""

from enum import Enum

from codechat.llm.models import Message, Role
from codechat.retrieval.models import ScoredItem


class SearchOutcome(str, Enum):
    """How the knowledge-base lookup for a turn went."""

    FOUND = "found"
    NO_RESULTS = "no_results"
    SEARCH_FAILED = "search_failed"
    NO_EMBEDDING = "no_embedding"


class ChatPromptTemplate:
    """Builds chat-completion messages from history, context and question.

    The final user message wraps the question together with a context block
    describing what the knowledge-base search found.
    """

    DEFAULT_SYSTEM_PROMPT = """You are a helpful assistant for questions about code examples.

Use the provided context from the knowledge base when it is relevant.
- Prefer the retrieved examples and mention them by name
- If the context does not help, answer from general knowledge and say so
- Be concise and include code when it clarifies the answer"""

    DEFAULT_USER_TEMPLATE = """Context from knowledge base:
---
{context}
---

User Query: {question}"""

    QUERY_PREVIEW_LENGTH = 30
    CONTENT_PREVIEW_LENGTH = 80

    OUTCOME_TEXT = {
        SearchOutcome.NO_RESULTS: "I couldn't find specific items in our database.",
        SearchOutcome.SEARCH_FAILED: "Error searching database.",
        SearchOutcome.NO_EMBEDDING: (
            "Could not process query for database search (embedding generation failed)."
        ),
    }

    def __init__(
        self,
        system_prompt: str | None = None,
        user_template: str | None = None,
    ) -> None:
        self.system_prompt = system_prompt or self.DEFAULT_SYSTEM_PROMPT
        self.user_template = user_template or self.DEFAULT_USER_TEMPLATE

    def format_context(
        self,
        question: str,
        suggestions: list[ScoredItem],
        outcome: SearchOutcome,
    ) -> str:
        """Describe the search result for the model.

        Args:
            question: The user's text.
            suggestions: Re-ranked items (used when ``outcome`` is FOUND).
            outcome: How the lookup went.

        Returns:
            Context block text.
        """
        preview = question[: self.QUERY_PREVIEW_LENGTH]
        if len(question) > self.QUERY_PREVIEW_LENGTH:
            preview += "..."
        lead = f'Regarding your query about "{preview}", '

        if outcome is SearchOutcome.FOUND and suggestions:
            lines = [self._format_suggestion(s) for s in suggestions]
            return (
                lead
                + f"I found potentially relevant items (top {len(suggestions)} shown as suggestions):\n"
                + "\n".join(lines)
            )

        if outcome is SearchOutcome.FOUND:
            outcome = SearchOutcome.NO_RESULTS
        return lead + self.OUTCOME_TEXT[outcome]

    def _format_suggestion(self, suggestion: ScoredItem) -> str:
        item = suggestion.item
        line = f"- {item.display_name}"
        if suggestion.similarity_score is not None:
            line += f" (Similarity: {suggestion.similarity_score * 100:.1f}%)"

        if item.content:
            snippet = item.content[: self.CONTENT_PREVIEW_LENGTH] + "..."
        else:
            snippet = "No description."
        return f"{line}: {snippet}"

    def build_messages(
        self,
        history: list[Message],
        question: str,
        context: str,
    ) -> list[Message]:
        """Assemble the full message list.

        Args:
            history: Earlier turns, oldest first (user/assistant roles).
            question: The user's text for this turn.
            context: Context block from ``format_context``.

        Returns:
            System preamble, history, then the context-wrapped question.
        """
        return [
            Message(role=Role.SYSTEM, content=self.system_prompt),
            *history,
            Message(
                role=Role.USER,
                content=self.user_template.format(context=context, question=question),
            ),
        ]
