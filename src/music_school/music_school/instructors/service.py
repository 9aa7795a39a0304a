from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from ..common.time_utils import to_hhmm, to_minutes
from ..common.validators import is_hhmm, require_non_empty, validate_email, validate_phone
from ..core.constants import INSTRUCTOR_COLORS
from ..core.enums import RecordStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..lessons.repository import LessonRepository
from ..users.model import SessionUser
from .model import WEEKDAYS, Instructor, TimeSlot
from .repository import InstructorRepository

logger = logging.getLogger(__name__)

_FIELDS = (
    "name",
    "specialties",
    "color",
    "email",
    "phone",
    "bio",
    "availability",
    "hourly_rate",
    "profile_picture_url",
)


def next_color(used: list[str]) -> str:
    """First palette color nobody uses yet, cycling once the palette is exhausted."""

    for color in INSTRUCTOR_COLORS:
        if color not in used:
            return color
    return INSTRUCTOR_COLORS[len(used) % len(INSTRUCTOR_COLORS)]


def free_slots(declared: list[TimeSlot], booked: list[tuple[str, str]]) -> list[TimeSlot]:
    """Subtract booked (start, end) ranges from the declared availability slots."""

    out: list[TimeSlot] = []
    busy = sorted((to_minutes(s), to_minutes(e)) for s, e in booked)
    for slot in declared:
        cursor, slot_end = to_minutes(slot.start), to_minutes(slot.end)
        for b_start, b_end in busy:
            if b_end <= cursor or b_start >= slot_end:
                continue
            if b_start > cursor:
                out.append(TimeSlot(start=to_hhmm(cursor), end=to_hhmm(b_start)))
            cursor = max(cursor, b_end)
        if cursor < slot_end:
            out.append(TimeSlot(start=to_hhmm(cursor), end=to_hhmm(slot_end)))
    return out


def _clean_availability(raw: Any) -> dict[str, list[dict]]:
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("Availability must map weekdays to time slots")

    out: dict[str, list[dict]] = {}
    for day, slots in raw.items():
        if day not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday: {day}")
        cleaned = []
        for s in slots or []:
            start, end = (s or {}).get("start", ""), (s or {}).get("end", "")
            if not (is_hhmm(start) and is_hhmm(end)):
                raise ValidationError(f"Invalid time slot on {day} (use HH:MM)")
            if to_minutes(end) <= to_minutes(start):
                raise ValidationError(f"Slot end must be after start on {day}")
            cleaned.append({"start": to_hhmm(to_minutes(start)), "end": to_hhmm(to_minutes(end))})
        out[day] = cleaned
    return out


class InstructorService:
    def __init__(self, instructors: InstructorRepository, lessons: LessonRepository):
        self._instructors = instructors
        self._lessons = lessons

    def list_all(self) -> list[Instructor]:
        return list(self._instructors.list_all())

    def list_active(self) -> list[Instructor]:
        return [i for i in self._instructors.list_all() if i.is_active]

    def get(self, instructor_id: int) -> Instructor:
        instructor = self._instructors.get_by_id(instructor_id)
        if not instructor:
            raise NotFoundError("Instructor not found")
        return instructor

    def _clean(self, data: dict[str, Any]) -> dict[str, Any]:
        out = {k: v for k, v in data.items() if k in _FIELDS}
        if "name" in out:
            out["name"] = require_non_empty(out["name"], "Instructor name")
        if "email" in out:
            out["email"] = validate_email(out["email"])
        if "phone" in out:
            out["phone"] = validate_phone(out["phone"])
        if "specialties" in out:
            out["specialties"] = [str(s).strip() for s in out["specialties"] or [] if str(s).strip()]
        if "availability" in out:
            out["availability"] = _clean_availability(out["availability"])
        if out.get("hourly_rate") is not None:
            try:
                out["hourly_rate"] = float(out["hourly_rate"])
            except (TypeError, ValueError):
                raise ValidationError("Hourly rate must be a number")
            if out["hourly_rate"] < 0:
                raise ValidationError("Hourly rate cannot be negative")
        return out

    def create(self, *, actor: SessionUser, data: dict[str, Any]) -> int:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can add instructors")

        row = self._clean(data)
        if "name" not in row:
            raise ValidationError("Instructor name is required")
        if not row.get("color"):
            row["color"] = next_color([i.color for i in self._instructors.list_all()])
        row["status"] = RecordStatus.ACTIVE

        instructor_id = self._instructors.create(row)
        logger.info("Instructor %s added: %s", instructor_id, row["name"])
        return instructor_id

    def update(self, *, actor: SessionUser, instructor_id: int, data: dict[str, Any]) -> None:
        if not (actor.is_admin or actor.owns_instructor(instructor_id)):
            raise AuthorizationError("You can only edit your own profile")

        self.get(instructor_id)
        changes = self._clean(data)
        if changes:
            self._instructors.update(instructor_id, changes)
            logger.info("Instructor %s updated (%s)", instructor_id, ", ".join(sorted(changes)))

    def toggle_status(self, *, actor: SessionUser, instructor_id: int) -> RecordStatus:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can change instructor status")

        instructor = self.get(instructor_id)
        status = RecordStatus.INACTIVE if instructor.is_active else RecordStatus.ACTIVE
        self._instructors.update(instructor_id, {"status": status})
        logger.info("Instructor %s is now %s", instructor_id, status.value)
        return status

    def delete(self, *, actor: SessionUser, instructor_id: int) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can delete instructors")
        if not self._instructors.delete(instructor_id):
            raise NotFoundError("Instructor not found")
        logger.info("Instructor %s deleted", instructor_id)

    def availability_for(self, instructor_id: int, on_date: date) -> list[TimeSlot]:
        """Declared slots for the weekday of `on_date` minus that day's booked lessons."""

        instructor = self.get(instructor_id)
        declared = instructor.availability.get(WEEKDAYS[on_date.weekday()], [])
        booked = [
            (l.start_time, l.end_time)
            for l in self._lessons.list_range(start=on_date, end=on_date, instructor_id=instructor_id)
        ]
        return free_slots(declared, booked)

    def count_active(self) -> int:
        return self._instructors.count_active()


def instructor_options(instructors: list[Instructor], selected: Optional[int] = None) -> list[dict]:
    """Active instructors as dropdown options; keeps an inactive `selected` one visible."""

    return [
        {"value": i.instructor_id, "label": i.name, "color": i.color}
        for i in instructors
        if i.is_active or i.instructor_id == selected
    ]
