from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import sanitize_input
from ..core.constants import DEFAULT_MESSAGE_PAGE
from ..core.enums import MessageType
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import SessionUser
from ..users.repository import UserRepository
from .model import ChatConversation, ChatMessage
from .repository import ConversationRepository, MessageRepository
from .validation import validate_message

logger = logging.getLogger(__name__)

MESSAGE_FIELDS = ("content", "type", "file_url", "file_name", "file_size", "reply_to")
PREVIEW_LENGTH = 100


def message_preview(message_type: MessageType, content: str, file_name: Optional[str]) -> str:
    if message_type != MessageType.TEXT:
        return f"[{message_type.value}] {file_name or ''}".strip()
    content = " ".join(content.split())
    if len(content) > PREVIEW_LENGTH:
        return content[: PREVIEW_LENGTH - 3] + "..."
    return content


class ChatService:
    def __init__(
        self,
        conversations: ConversationRepository,
        messages: MessageRepository,
        users: UserRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._conversations = conversations
        self._messages = messages
        self._users = users
        self._clock = clock

    def _conversation_for(self, user_id: int, conversation_id: int) -> ChatConversation:
        conversation = self._conversations.get_by_id(conversation_id)
        if not conversation or not conversation.is_active:
            raise NotFoundError("Conversation not found")
        if not conversation.has_participant(user_id):
            raise AuthorizationError("You are not a participant of this conversation")
        return conversation

    def _message_for(self, message_id: int) -> ChatMessage:
        message = self._messages.get_by_id(message_id)
        if not message or message.is_deleted:
            raise NotFoundError("Message not found")
        return message

    # Conversations

    def list_conversations(self, user_id: int) -> list[ChatConversation]:
        return [
            replace(c, unread_count=self._messages.unread_count(c.conversation_id, user_id))
            for c in self._conversations.list_for_user(user_id)
        ]

    def create_conversation(
        self,
        *,
        created_by: int,
        participant_ids: Iterable[int],
        title: Optional[str] = None,
    ) -> int:
        """Start a conversation. A direct conversation that already exists is returned instead of a new one."""

        ids = [int(created_by)]
        for pid in participant_ids:
            if int(pid) not in ids:
                ids.append(int(pid))
        if len(ids) < 2:
            raise ValidationError("A conversation needs at least one other participant")
        for pid in ids:
            user = self._users.get_by_id(pid)
            if not user or not user.is_active:
                raise ValidationError(f"User {pid} cannot join conversations")

        is_group = len(ids) > 2
        if not is_group:
            existing = self._conversations.find_direct(ids[0], ids[1])
            if existing:
                return existing.conversation_id

        conversation_id = self._conversations.create(
            {
                "title": sanitize_input(title) or None,
                "participant_ids": ids,
                "is_group": is_group,
                "is_active": True,
                "created_by": int(created_by),
            }
        )
        logger.info("Conversation %s created by user %s (%d participants)", conversation_id, created_by, len(ids))
        return conversation_id

    def set_archived(self, *, user_id: int, conversation_id: int, archived: bool) -> None:
        self._conversation_for(user_id, conversation_id)
        self._conversations.update(conversation_id, {"archived": bool(archived)})

    def set_pinned(self, *, user_id: int, conversation_id: int, pinned: bool) -> None:
        self._conversation_for(user_id, conversation_id)
        self._conversations.update(conversation_id, {"pinned": bool(pinned)})

    def mute(self, *, user_id: int, conversation_id: int, until: Optional[datetime]) -> None:
        """Mute until the given time; None unmutes."""

        self._conversation_for(user_id, conversation_id)
        if until is not None and until <= self._clock():
            raise ValidationError("Mute end must be in the future")
        self._conversations.update(conversation_id, {"muted_until": until})

    # Messages

    def send_message(self, *, sender: SessionUser, conversation_id: int, form: dict[str, Any]) -> int:
        conversation = self._conversation_for(sender.user_id, conversation_id)
        data = {k: v for k, v in form.items() if k in MESSAGE_FIELDS}
        validate_message(data).raise_if_invalid()

        if data.get("reply_to"):
            replied = self._message_for(int(data["reply_to"]))
            if replied.conversation_id != conversation.conversation_id:
                raise ValidationError("Replies must stay in the same conversation")

        message_type = MessageType(data.get("type") or MessageType.TEXT.value)
        content = (data.get("content") or "").strip()
        now = self._clock()
        message_id = self._messages.create(
            {
                "conversation_id": conversation.conversation_id,
                "sender_id": sender.user_id,
                "sender_name": sender.full_name,
                "sender_type": sender.role.value,
                "content": content,
                "type": message_type,
                "file_url": data.get("file_url"),
                "file_name": data.get("file_name"),
                "file_size": int(data["file_size"]) if data.get("file_size") is not None else None,
                "reply_to": int(data["reply_to"]) if data.get("reply_to") else None,
                "read_by": [sender.user_id],
            }
        )
        self._conversations.update(
            conversation.conversation_id,
            {
                "last_message_at": now,
                "last_message_preview": message_preview(message_type, content, data.get("file_name")),
                "archived": False,
            },
        )
        logger.info("Message %s sent to conversation %s by user %s", message_id, conversation_id, sender.user_id)
        return message_id

    def edit_message(self, *, user_id: int, message_id: int, content: str) -> None:
        message = self._message_for(message_id)
        if message.sender_id != int(user_id):
            raise AuthorizationError("You can only edit your own messages")
        if message.type != MessageType.TEXT:
            raise ValidationError("Only text messages can be edited")
        validate_message({"type": MessageType.TEXT.value, "content": content}).raise_if_invalid()

        self._messages.update(message_id, {"content": content.strip(), "is_edited": True, "edited_at": self._clock()})
        logger.info("Message %s edited", message_id)

    def delete_message(self, *, actor: SessionUser, message_id: int) -> None:
        message = self._message_for(message_id)
        if message.sender_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("You can only delete your own messages")
        self._messages.update(message_id, {"is_deleted": True, "deleted_at": self._clock()})
        logger.info("Message %s deleted by user %s", message_id, actor.user_id)

    def get_messages(
        self,
        *,
        user_id: int,
        conversation_id: int,
        limit: int = DEFAULT_MESSAGE_PAGE,
        before: Optional[datetime] = None,
    ) -> list[ChatMessage]:
        """One page of messages, oldest first."""

        self._conversation_for(user_id, conversation_id)
        if limit <= 0:
            raise ValidationError("Limit must be positive")
        page = self._messages.list_page(conversation_id, limit=limit, before=before)
        return list(reversed(list(page)))

    def mark_read(self, *, user_id: int, conversation_id: int) -> int:
        self._conversation_for(user_id, conversation_id)
        return self._messages.mark_read(conversation_id, user_id)

    def search_messages(self, *, user_id: int, query: str, conversation_id: Optional[int] = None) -> list[ChatMessage]:
        query = (query or "").strip()
        if not query:
            return []
        if conversation_id:
            ids = [self._conversation_for(user_id, conversation_id).conversation_id]
        else:
            ids = [c.conversation_id for c in self._conversations.list_for_user(user_id)]
        return list(self._messages.search(ids, query))
