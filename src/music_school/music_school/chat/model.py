from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import MessageType


@dataclass(frozen=True)
class ChatConversation:
    conversation_id: int
    participant_ids: list[int]
    created_by: int
    title: Optional[str] = None
    last_message_at: Optional[datetime] = None
    last_message_preview: Optional[str] = None
    is_active: bool = True
    is_group: bool = False
    pinned: bool = False
    archived: bool = False
    muted_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    unread_count: int = 0

    def has_participant(self, user_id: int) -> bool:
        return int(user_id) in self.participant_ids

    def is_muted(self, now: datetime) -> bool:
        return self.muted_until is not None and self.muted_until > now


@dataclass(frozen=True)
class ChatMessage:
    message_id: int
    conversation_id: int
    sender_id: int
    sender_name: str
    sender_type: str
    content: str
    type: MessageType = MessageType.TEXT
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    reply_to: Optional[int] = None
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    read_by: list[int] = field(default_factory=list)
    created_at: Optional[datetime] = None
