from __future__ import annotations

from datetime import datetime

from flask import Flask, request

from ..common.mappers import from_ui, to_ui_list
from ..common.web import arg_int, current_user, json_body, login_required, ok
from ..container import Container
from ..core.constants import DEFAULT_MESSAGE_PAGE
from ..core.exceptions import ValidationError
from .service import MESSAGE_FIELDS

_CONVERSATION_RENAMES = {"conversation_id": "id"}
_MESSAGE_RENAMES = {"message_id": "id"}


def _parse_datetime(value, label: str):
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{label} must be an ISO date-time")


def register(app: Flask, container: Container) -> None:
    svc = container.chat_service

    @app.route("/api/chat/conversations", methods=["GET"], endpoint="list_conversations")
    @login_required
    def list_conversations():
        rows = svc.list_conversations(current_user().user_id)
        return ok({"conversations": to_ui_list(rows, renames=_CONVERSATION_RENAMES)})

    @app.route("/api/chat/conversations", methods=["POST"], endpoint="create_conversation")
    @login_required
    def create_conversation():
        data = json_body()
        participants = data.get("participantIds")
        if not isinstance(participants, list):
            raise ValidationError("participantIds must be a list")
        try:
            participant_ids = [int(p) for p in participants]
        except (TypeError, ValueError):
            raise ValidationError("participantIds must contain user ids")
        conversation_id = svc.create_conversation(
            created_by=current_user().user_id,
            participant_ids=participant_ids,
            title=data.get("title"),
        )
        return ok({"id": conversation_id}, 201)

    @app.route("/api/chat/conversations/<int:conversation_id>/messages", methods=["GET"], endpoint="list_messages")
    @login_required
    def list_messages(conversation_id: int):
        rows = svc.get_messages(
            user_id=current_user().user_id,
            conversation_id=conversation_id,
            limit=arg_int("limit", DEFAULT_MESSAGE_PAGE),
            before=_parse_datetime(request.args.get("before"), "before"),
        )
        return ok({"messages": to_ui_list(rows, renames=_MESSAGE_RENAMES)})

    @app.route("/api/chat/conversations/<int:conversation_id>/messages", methods=["POST"], endpoint="send_message")
    @login_required
    def send_message(conversation_id: int):
        form = from_ui(json_body(), allowed=MESSAGE_FIELDS)
        message_id = svc.send_message(sender=current_user(), conversation_id=conversation_id, form=form)
        return ok({"id": message_id}, 201)

    @app.route("/api/chat/conversations/<int:conversation_id>/read", methods=["POST"], endpoint="mark_conversation_read")
    @login_required
    def mark_conversation_read(conversation_id: int):
        updated = svc.mark_read(user_id=current_user().user_id, conversation_id=conversation_id)
        return ok({"updated": updated})

    @app.route("/api/chat/conversations/<int:conversation_id>/archive", methods=["POST"], endpoint="archive_conversation")
    @login_required
    def archive_conversation(conversation_id: int):
        archived = bool(json_body().get("archived", True))
        svc.set_archived(user_id=current_user().user_id, conversation_id=conversation_id, archived=archived)
        return ok()

    @app.route("/api/chat/conversations/<int:conversation_id>/pin", methods=["POST"], endpoint="pin_conversation")
    @login_required
    def pin_conversation(conversation_id: int):
        pinned = bool(json_body().get("pinned", True))
        svc.set_pinned(user_id=current_user().user_id, conversation_id=conversation_id, pinned=pinned)
        return ok()

    @app.route("/api/chat/conversations/<int:conversation_id>/mute", methods=["POST"], endpoint="mute_conversation")
    @login_required
    def mute_conversation(conversation_id: int):
        until = _parse_datetime(json_body().get("until"), "until")
        svc.mute(user_id=current_user().user_id, conversation_id=conversation_id, until=until)
        return ok()

    @app.route("/api/chat/messages/<int:message_id>", methods=["PUT"], endpoint="edit_message")
    @login_required
    def edit_message(message_id: int):
        svc.edit_message(user_id=current_user().user_id, message_id=message_id, content=json_body().get("content") or "")
        return ok()

    @app.route("/api/chat/messages/<int:message_id>", methods=["DELETE"], endpoint="delete_message")
    @login_required
    def delete_message(message_id: int):
        svc.delete_message(actor=current_user(), message_id=message_id)
        return ok()

    @app.route("/api/chat/search", methods=["GET"], endpoint="search_messages")
    @login_required
    def search_messages():
        rows = svc.search_messages(
            user_id=current_user().user_id,
            query=request.args.get("q", ""),
            conversation_id=arg_int("conversationId"),
        )
        return ok({"messages": to_ui_list(rows, renames=_MESSAGE_RENAMES)})
