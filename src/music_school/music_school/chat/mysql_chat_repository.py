from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from ..common.mappers import dump_json, load_json_list
from ..core.enums import MessageType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone, in_clause
from .model import ChatConversation, ChatMessage
from .repository import ConversationRepository, MessageRepository

_CONVERSATION_COLUMNS = (
    "conversation_id, title, participant_ids, last_message_at, last_message_preview, is_active, "
    "is_group, created_by, pinned, archived, muted_until, created_at"
)
_CONVERSATION_WRITABLE = (
    "title",
    "participant_ids",
    "last_message_at",
    "last_message_preview",
    "is_active",
    "is_group",
    "created_by",
    "pinned",
    "archived",
    "muted_until",
)
_MESSAGE_COLUMNS = (
    "message_id, conversation_id, sender_id, sender_name, sender_type, content, type, file_url, file_name, "
    "file_size, reply_to, is_edited, edited_at, is_deleted, deleted_at, read_by, created_at"
)
_MESSAGE_WRITABLE = (
    "conversation_id",
    "sender_id",
    "sender_name",
    "sender_type",
    "content",
    "type",
    "file_url",
    "file_name",
    "file_size",
    "reply_to",
    "is_edited",
    "edited_at",
    "is_deleted",
    "deleted_at",
    "read_by",
)
_JSON_COLUMNS = {"participant_ids", "read_by"}
_SEARCH_LIMIT = 100


def _to_conversation(r: dict) -> ChatConversation:
    return ChatConversation(
        conversation_id=int(r["conversation_id"]),
        participant_ids=[int(i) for i in load_json_list(r.get("participant_ids"))],
        created_by=int(r["created_by"]),
        title=r.get("title"),
        last_message_at=r.get("last_message_at"),
        last_message_preview=r.get("last_message_preview"),
        is_active=bool(r.get("is_active", 1)),
        is_group=bool(r.get("is_group", 0)),
        pinned=bool(r.get("pinned", 0)),
        archived=bool(r.get("archived", 0)),
        muted_until=r.get("muted_until"),
        created_at=r.get("created_at"),
    )


def _to_message(r: dict) -> ChatMessage:
    return ChatMessage(
        message_id=int(r["message_id"]),
        conversation_id=int(r["conversation_id"]),
        sender_id=int(r["sender_id"]),
        sender_name=r["sender_name"],
        sender_type=r["sender_type"],
        content=r.get("content") or "",
        type=MessageType(r.get("type") or "text"),
        file_url=r.get("file_url"),
        file_name=r.get("file_name"),
        file_size=r.get("file_size"),
        reply_to=r.get("reply_to"),
        is_edited=bool(r.get("is_edited", 0)),
        edited_at=r.get("edited_at"),
        is_deleted=bool(r.get("is_deleted", 0)),
        deleted_at=r.get("deleted_at"),
        read_by=[int(i) for i in load_json_list(r.get("read_by"))],
        created_at=r.get("created_at"),
    )


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for k, v in data.items():
        if k in _JSON_COLUMNS:
            v = dump_json(list(v or []))
        elif isinstance(v, MessageType):
            v = v.value
        out[k] = v
    return out


def _insert(cur, table: str, row: dict[str, Any]) -> int:
    cols = list(row)
    cur.execute(
        f"INSERT INTO {table}({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
        tuple(row[c] for c in cols),
    )
    return int(cur.lastrowid)


class MySQLConversationRepository(ConversationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, conversation_id: int) -> Optional[ChatConversation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_CONVERSATION_COLUMNS} FROM chat_conversations WHERE conversation_id=%s",
                (int(conversation_id),),
            )
            r = fetchone(cur)
            return _to_conversation(r) if r else None

    def list_for_user(self, user_id: int) -> Sequence[ChatConversation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_CONVERSATION_COLUMNS} FROM chat_conversations
                WHERE is_active=1 AND JSON_CONTAINS(participant_ids, CAST(%s AS JSON))
                ORDER BY pinned DESC, COALESCE(last_message_at, created_at) DESC
                """,
                (str(int(user_id)),),
            )
            return [_to_conversation(r) for r in fetchall(cur)]

    def find_direct(self, user_a: int, user_b: int) -> Optional[ChatConversation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_CONVERSATION_COLUMNS} FROM chat_conversations
                WHERE is_group=0 AND is_active=1 AND JSON_LENGTH(participant_ids)=2
                  AND JSON_CONTAINS(participant_ids, CAST(%s AS JSON))
                  AND JSON_CONTAINS(participant_ids, CAST(%s AS JSON))
                LIMIT 1
                """,
                (str(int(user_a)), str(int(user_b))),
            )
            r = fetchone(cur)
            return _to_conversation(r) if r else None

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _CONVERSATION_WRITABLE})
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(cur, "chat_conversations", row)

    def update(self, conversation_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update(
            "chat_conversations",
            "conversation_id",
            int(conversation_id),
            _to_columns(changes),
            allowed=_CONVERSATION_WRITABLE,
        )
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0


class MySQLMessageRepository(MessageRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, message_id: int) -> Optional[ChatMessage]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MESSAGE_COLUMNS} FROM chat_messages WHERE message_id=%s", (int(message_id),))
            r = fetchone(cur)
            return _to_message(r) if r else None

    def list_page(self, conversation_id: int, *, limit: int, before: Optional[datetime] = None) -> Sequence[ChatMessage]:
        sql = f"SELECT {_MESSAGE_COLUMNS} FROM chat_messages WHERE conversation_id=%s AND is_deleted=0"
        params: list[Any] = [int(conversation_id)]
        if before:
            sql += " AND created_at < %s"
            params.append(before)
        sql += " ORDER BY created_at DESC, message_id DESC LIMIT %s"
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_message(r) for r in fetchall(cur)]

    def search(self, conversation_ids: Iterable[int], query: str) -> Sequence[ChatMessage]:
        ids = [int(i) for i in conversation_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MESSAGE_COLUMNS} FROM chat_messages
                WHERE conversation_id IN ({in_clause(ids)}) AND is_deleted=0 AND content LIKE %s
                ORDER BY created_at DESC LIMIT {_SEARCH_LIMIT}
                """,
                (*ids, f"%{query}%"),
            )
            return [_to_message(r) for r in fetchall(cur)]

    def unread_count(self, conversation_id: int, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM chat_messages
                WHERE conversation_id=%s AND sender_id<>%s AND is_deleted=0
                  AND NOT JSON_CONTAINS(COALESCE(read_by, JSON_ARRAY()), CAST(%s AS JSON))
                """,
                (int(conversation_id), int(user_id), str(int(user_id))),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def mark_read(self, conversation_id: int, user_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE chat_messages
                SET read_by = JSON_ARRAY_APPEND(COALESCE(read_by, JSON_ARRAY()), '$', %s)
                WHERE conversation_id=%s AND sender_id<>%s AND is_deleted=0
                  AND NOT JSON_CONTAINS(COALESCE(read_by, JSON_ARRAY()), CAST(%s AS JSON))
                """,
                (int(user_id), int(conversation_id), int(user_id), str(int(user_id))),
            )
            return int(cur.rowcount or 0)

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _MESSAGE_WRITABLE})
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(cur, "chat_messages", row)

    def update(self, message_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("chat_messages", "message_id", int(message_id), _to_columns(changes), allowed=_MESSAGE_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0
