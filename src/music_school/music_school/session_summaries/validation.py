from __future__ import annotations

from typing import Any, Optional

from ..common.validators import ValidationResult


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_practice_assignment(assignment: dict, index: Optional[int] = None) -> list[str]:
    prefix = f"Practice assignment {index}" if index else "Practice assignment"
    result = ValidationResult()

    title = (assignment.get("title") or "").strip()
    description = (assignment.get("description") or "").strip()
    result.check(bool(title), f"{prefix} requires a title")
    result.check(len(title) <= 100, f"{prefix} title cannot exceed 100 characters")
    result.check(bool(description), f"{prefix} requires a description")
    result.check(len(description) <= 500, f"{prefix} description cannot exceed 500 characters")

    duration = assignment.get("duration")
    if duration is not None:
        result.check(_is_number(duration) and duration >= 0, f"{prefix} duration cannot be negative")
    return result.errors


def validate_session_summary(form: dict) -> ValidationResult:
    result = ValidationResult()

    text = form.get("summary_text") or ""
    if not text.strip():
        result.add("Summary text is required")
    result.check(len(text) >= 10, "Summary must be at least 10 characters long")
    result.check(len(text) <= 2000, "Summary cannot exceed 2000 characters")

    topics = form.get("topics_covered")
    result.check(isinstance(topics, list) and len(topics) > 0, "At least one topic covered is required")

    for key, label in (
        ("student_performance_rating", "Student performance rating"),
        ("lesson_difficulty_rating", "Lesson difficulty rating"),
    ):
        value = form.get(key)
        if value is not None:
            result.check(_is_number(value) and 1 <= value <= 5, f"{label} must be between 1 and 5")

    practice_time = form.get("recommended_practice_time")
    if practice_time is not None:
        result.check(
            _is_number(practice_time) and practice_time >= 0,
            "Recommended practice time cannot be negative",
        )

    for i, assignment in enumerate(form.get("practice_assignments") or [], start=1):
        for error in validate_practice_assignment(assignment or {}, i):
            result.add(error)

    return result
