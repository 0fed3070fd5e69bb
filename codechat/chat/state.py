"""Persisted chat state: transcript and preferences in one JSON file.

Values live under fixed keys so the file stays readable and tolerant of
partial corruption: a damaged entry is dropped without losing the rest.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from codechat.catalog.models import ContentTable
from codechat.chat.models import ChatMessage, Preferences
from codechat.exceptions import ChatStateError
from codechat.logging_config import get_logger

logger = get_logger(__name__)

MESSAGES_KEY = "chatMessages"
VERSION_KEY = "selectedVersion"
TABLE_KEY = "selectedTable"
FILTER_KEY = "filterByVersion"

_messages_adapter = TypeAdapter(list[ChatMessage])


class ChatStateStore:
    """Reads and writes the chat state file."""

    def __init__(self, path: Path, default_version: str = "1.0.0") -> None:
        """Initialize the store.

        Args:
            path: State file location; created on first write.
            default_version: Version selected when none is stored.
        """
        self._path = Path(path).expanduser()
        self._default_version = default_version

    @property
    def path(self) -> Path:
        return self._path

    def load_messages(self) -> list[ChatMessage]:
        """Load the transcript.

        A corrupt transcript is logged, removed from the file and replaced
        by an empty one.
        """
        data = self._read()
        raw = data.get(MESSAGES_KEY)
        if raw is None:
            return []

        try:
            if not isinstance(raw, list):
                raise TypeError(f"expected a list, got {type(raw).__name__}")
            messages = _messages_adapter.validate_python(raw)
        except (TypeError, PydanticValidationError) as e:
            logger.error(f"Discarding unreadable chat history: {e}")
            self._remove(MESSAGES_KEY)
            return []

        logger.info(f"Chat history loaded ({len(messages)} messages)")
        return messages

    def save_messages(self, messages: list[ChatMessage]) -> None:
        """Persist the transcript; an empty transcript removes the key.

        Raises:
            ChatStateError: If the file cannot be written.
        """
        if not messages:
            self._remove(MESSAGES_KEY)
            return

        data = self._read()
        data[MESSAGES_KEY] = _messages_adapter.dump_python(messages, mode="json")
        self._write(data)

    def load_preferences(self) -> Preferences:
        """Load preferences, falling back to defaults per value."""
        data = self._read()
        prefs = Preferences(selected_version=self._default_version)

        version = data.get(VERSION_KEY)
        if isinstance(version, str) and version:
            prefs.selected_version = version

        table = data.get(TABLE_KEY)
        if table is not None:
            try:
                prefs.selected_table = ContentTable(table)
            except ValueError:
                logger.warning(f"Ignoring unknown stored table: {table!r}")

        filter_by_version = data.get(FILTER_KEY)
        if isinstance(filter_by_version, bool):
            prefs.filter_by_version = filter_by_version

        return prefs

    def save_preferences(self, prefs: Preferences) -> None:
        """Persist preferences.

        Raises:
            ChatStateError: If the file cannot be written.
        """
        data = self._read()
        data[VERSION_KEY] = prefs.selected_version
        data[TABLE_KEY] = prefs.selected_table.value
        data[FILTER_KEY] = prefs.filter_by_version
        self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Could not read chat state from {self._path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Chat state in {self._path} is not an object; ignoring it")
            return {}
        return data

    def _remove(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)
            logger.info(f"Removed {key} from chat state")

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ChatStateError(
                f"Could not write chat state: {e}",
                details={"path": str(self._path)},
            ) from e
