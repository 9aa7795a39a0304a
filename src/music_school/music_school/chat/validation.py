from __future__ import annotations

from ..common.validators import ValidationResult
from ..core.constants import MAX_FILE_SIZE, MAX_MESSAGE_LENGTH
from ..core.enums import MessageType


def validate_message(form: dict) -> ValidationResult:
    result = ValidationResult()
    kind = form.get("type") or MessageType.TEXT.value
    content = (form.get("content") or "").strip()

    if kind not in {t.value for t in MessageType}:
        result.add("Invalid message type")
        return result

    if kind == MessageType.TEXT.value:
        result.check(bool(content), "Message content cannot be empty")
    result.check(
        len(content) <= MAX_MESSAGE_LENGTH,
        f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters",
    )

    reply_to = form.get("reply_to")
    if reply_to not in (None, ""):
        try:
            int(reply_to)
        except (TypeError, ValueError):
            result.add("Reply target must be a message id")

    if kind != MessageType.TEXT.value:
        result.check(bool(form.get("file_url")), "File URL is required for file messages")
        result.check(bool(form.get("file_name")), "File name is required for file messages")
        size = form.get("file_size")
        if size is not None:
            try:
                size = int(size)
            except (TypeError, ValueError):
                result.add("File size must be a number")
            else:
                result.check(0 <= size <= MAX_FILE_SIZE, f"File cannot exceed {MAX_FILE_SIZE // (1024 * 1024)} MB")

    return result
