from __future__ import annotations

import logging
from datetime import date
from typing import Any

from ..common.datetime_utils import calculate_age, parse_optional_date
from ..common.mappers import to_ui
from ..common.validators import (
    ValidationResult,
    require_max_length,
    sanitize_input,
    validate_email,
    validate_phone,
)
from ..core.enums import Gender, RecordStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..users.model import SessionUser
from .model import Student, format_student_number
from .repository import StudentRepository

logger = logging.getLogger(__name__)

ENROLLMENT_FIELDS = (
    "name",
    "nickname",
    "birthdate",
    "age",
    "gender",
    "email",
    "contact_number",
    "facebook",
    "guardian_full_name",
    "guardian_relationship",
    "guardian_phone",
    "guardian_email",
    "guardian_facebook",
    "address_country",
    "address_province",
    "address_city",
    "address_barangay",
    "address_line1",
    "address_line2",
    "instrument",
    "level",
    "instructor_id",
    "notes",
    "parent_student_id",
)
CONTACT_FIELDS = (
    "email",
    "contact_number",
    "facebook",
    "guardian_full_name",
    "guardian_phone",
    "guardian_email",
    "guardian_facebook",
)
_TEXT_FIELDS = {
    "name",
    "nickname",
    "facebook",
    "guardian_full_name",
    "guardian_relationship",
    "guardian_facebook",
    "address_country",
    "address_province",
    "address_city",
    "address_barangay",
    "address_line1",
    "address_line2",
    "instrument",
    "level",
    "notes",
}


def clean_student_data(data: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Validate an enrollment/edit form and return column values.

    With partial=True only the given keys are checked (edits).
    """

    out: dict[str, Any] = {}
    result = ValidationResult()

    for key, value in data.items():
        if key not in ENROLLMENT_FIELDS:
            continue
        if key in _TEXT_FIELDS:
            value = sanitize_input(value) or None
        out[key] = value

    if not partial or "name" in out:
        result.check(bool(out.get("name")), "Student name is required")
    if not partial or "instrument" in out:
        result.check(bool(out.get("instrument")), "Instrument is required")

    for key, label in (("email", "Email"), ("guardian_email", "Guardian email")):
        if key in out:
            try:
                out[key] = validate_email(out[key], label)
            except ValidationError as e:
                result.add(str(e))
    for key, label in (("contact_number", "Contact number"), ("guardian_phone", "Guardian phone")):
        if key in out:
            try:
                out[key] = validate_phone(out[key], label)
            except ValidationError as e:
                result.add(str(e))

    if out.get("gender"):
        result.check(out["gender"] in {g.value for g in Gender}, 'Gender must be "Male" or "Female"')

    if "birthdate" in out:
        birthdate = out["birthdate"]
        if isinstance(birthdate, str):
            try:
                birthdate = parse_optional_date(birthdate)
            except ValidationError as e:
                result.add(str(e))
                birthdate = None
        out["birthdate"] = birthdate
        if birthdate:
            result.check(birthdate <= date.today(), "Birthdate cannot be in the future")
            out["age"] = calculate_age(birthdate)

    for key in ("instructor_id", "parent_student_id", "age"):
        if key not in out:
            continue
        if out[key] in ("", None):
            out[key] = None
            continue
        try:
            out[key] = int(out[key])
        except (TypeError, ValueError):
            result.add(f"{key.replace('_', ' ').capitalize()} must be a number")

    try:
        require_max_length(out.get("notes"), "Notes", 2000)
    except ValidationError as e:
        result.add(str(e))

    result.raise_if_invalid()
    return out


class StudentService:
    def __init__(self, students: StudentRepository):
        self._students = students

    def list_all(self) -> list[Student]:
        return list(self._students.list_all())

    def get(self, student_id: int) -> Student:
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    def search(self, query: str) -> list[Student]:
        query = (query or "").strip()
        if not query:
            return self.list_all()
        return list(self._students.search(query))

    def _next_number(self) -> str:
        return format_student_number(self._students.max_student_number() + 1)

    def enroll(self, *, actor: SessionUser, data: dict[str, Any]) -> int:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can enroll students")

        row = clean_student_data(data)
        row.update(
            student_id_number=self._next_number(),
            sessions_attended=0,
            sessions_billed=0,
            credit_balance=0,
            status=RecordStatus.ACTIVE,
        )
        student_id = self._students.create(row)
        logger.info("Enrolled student %s (%s) in %s", student_id, row["student_id_number"], row["instrument"])
        return student_id

    def bulk_enroll(self, *, actor: SessionUser, rows: list[dict[str, Any]]) -> list[int]:
        """Enroll every row; all rows are validated before the first insert."""

        if not actor.is_admin:
            raise AuthorizationError("Only admins can enroll students")

        cleaned = []
        for i, data in enumerate(rows, start=1):
            try:
                cleaned.append(clean_student_data(data))
            except ValidationError as e:
                raise ValidationError(f"Row {i}: {e}")

        ids = [self.enroll(actor=actor, data=row) for row in cleaned]
        logger.info("Bulk enrolled %d students", len(ids))
        return ids

    def update(self, *, actor: SessionUser, student_id: int, data: dict[str, Any]) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can edit student records")
        self.get(student_id)
        changes = clean_student_data(data, partial=True)
        if changes:
            self._students.update(student_id, changes)
            logger.info("Student %s updated (%s)", student_id, ", ".join(sorted(changes)))

    def update_contact(self, *, actor: SessionUser, student_id: int, data: dict[str, Any]) -> None:
        self.update(actor=actor, student_id=student_id, data={k: v for k, v in data.items() if k in CONTACT_FIELDS})

    def toggle_status(self, *, actor: SessionUser, student_id: int) -> RecordStatus:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can change student status")
        student = self.get(student_id)
        status = RecordStatus.INACTIVE if student.is_active else RecordStatus.ACTIVE
        self._students.update(student_id, {"status": status})
        logger.info("Student %s is now %s", student_id, status.value)
        return status

    def update_sessions(self, *, actor: SessionUser, student_id: int, unpaid_count: int) -> int:
        """Correct the attended counter: attended = billed + unpaid_count."""

        if not actor.is_admin:
            raise AuthorizationError("Only admins can correct session counts")
        if int(unpaid_count) < 0:
            raise ValidationError("Unpaid sessions cannot be negative")

        student = self.get(student_id)
        attended = student.sessions_billed + int(unpaid_count)
        self._students.update(student_id, {"sessions_attended": attended})
        logger.info("Student %s sessions_attended set to %d", student_id, attended)
        return attended

    def delete(self, *, actor: SessionUser, student_id: int) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can delete students")
        if not self._students.delete(student_id):
            raise NotFoundError("Student not found")
        logger.info("Student %s deleted", student_id)

    def count_active(self) -> int:
        return self._students.count_active()

    def linked_enrollments(self, student_id: int) -> list[Student]:
        """Other instrument enrollments of the same person (parent/child links)."""

        student = self.get(student_id)
        root = student.parent_student_id or student.student_id
        return [
            s
            for s in self._students.list_all()
            if s.student_id != student.student_id and (s.student_id == root or s.parent_student_id == root)
        ]


def student_ui(student: Student) -> dict:
    out = to_ui(student, renames={"student_id": "id"})
    out["unpaidSessions"] = student.unpaid_sessions
    out["cycleProgress"] = student.cycle_progress
    out["profilePictureUrl"] = student.profile_picture_url
    return out
