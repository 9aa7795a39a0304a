from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Protocol, Sequence

from .model import ChatConversation, ChatMessage


class ConversationRepository(Protocol):
    def get_by_id(self, conversation_id: int) -> Optional[ChatConversation]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[ChatConversation]:
        """Active conversations containing the user, newest activity first."""

        raise NotImplementedError

    def find_direct(self, user_a: int, user_b: int) -> Optional[ChatConversation]:
        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, conversation_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError


class MessageRepository(Protocol):
    def get_by_id(self, message_id: int) -> Optional[ChatMessage]:
        raise NotImplementedError

    def list_page(self, conversation_id: int, *, limit: int, before: Optional[datetime] = None) -> Sequence[ChatMessage]:
        """Newest non-deleted messages first, created strictly before `before` when given."""

        raise NotImplementedError

    def search(self, conversation_ids: Iterable[int], query: str) -> Sequence[ChatMessage]:
        raise NotImplementedError

    def unread_count(self, conversation_id: int, user_id: int) -> int:
        raise NotImplementedError

    def mark_read(self, conversation_id: int, user_id: int) -> int:
        """Add user_id to read_by of every message not sent by the user. Returns the rows touched."""

        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, message_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError
