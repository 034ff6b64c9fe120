"""
Message Board

The user-facing message channel of an editing session.

Every operation that succeeds, fails or has something to point out
posts exactly one message. The board keeps the latest message for
display and an append-only history for inspection. Messages are also
forwarded to the ``editor.messages`` logger.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class MessageLevel(Enum):
    """Severity of a user message."""
    OK = "ok"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    MessageLevel.OK: logging.INFO,
    MessageLevel.INFO: logging.INFO,
    MessageLevel.WARNING: logging.WARNING,
    MessageLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Message:
    level: MessageLevel
    title: str
    text: str
    posted_at: datetime
    closable: bool = False

    def __str__(self) -> str:
        return f"{self.title}: {self.text}"


class MessageBoard:
    """
    Append-only collector of user messages.

    ``current`` is what a UI shows; ``clear`` hides it without touching
    the history.
    """

    def __init__(self):
        self._history: List[Message] = []
        self._current: Optional[Message] = None

    def post(self, level: MessageLevel, title: str, text: str, closable: bool = False) -> Message:
        message = Message(
            level=level,
            title=title,
            text=text,
            posted_at=datetime.now(timezone.utc),
            closable=closable
        )
        self._history.append(message)
        self._current = message
        logger.log(_LOG_LEVELS[level], "%s", message)
        return message

    def set_ok(self, title: str, text: str, closable: bool = False) -> Message:
        return self.post(MessageLevel.OK, title, text, closable)

    def set_info(self, title: str, text: str, closable: bool = False) -> Message:
        return self.post(MessageLevel.INFO, title, text, closable)

    def set_warning(self, title: str, text: str, closable: bool = False) -> Message:
        return self.post(MessageLevel.WARNING, title, text, closable)

    def set_error(self, title: str, text: str, closable: bool = False) -> Message:
        return self.post(MessageLevel.ERROR, title, text, closable)

    def clear(self):
        self._current = None

    @property
    def current(self) -> Optional[Message]:
        return self._current

    def history(self, level: Optional[MessageLevel] = None) -> List[Message]:
        """Posted messages, oldest first, optionally filtered by level."""
        if level is None:
            return list(self._history)
        return [message for message in self._history if message.level == level]

    @property
    def message_count(self) -> int:
        return len(self._history)
