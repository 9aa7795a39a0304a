from __future__ import annotations

from ..common.time_utils import to_minutes
from ..common.validators import ValidationResult, is_hhmm
from ..core.enums import AttendanceStatus


def validate_attendance(form: dict) -> ValidationResult:
    result = ValidationResult()
    status = form.get("status")
    arrival = form.get("arrival_time")
    departure = form.get("departure_time")

    if not status:
        result.add("Attendance status is required")
    elif status not in {s.value for s in AttendanceStatus}:
        result.add("Invalid attendance status")

    arrival_ok = bool(arrival) and is_hhmm(arrival)
    departure_ok = bool(departure) and is_hhmm(departure)
    if arrival and not arrival_ok:
        result.add("Invalid arrival time format (use HH:MM)")
    if departure and not departure_ok:
        result.add("Invalid departure time format (use HH:MM)")

    if status == AttendanceStatus.PRESENT.value and not arrival:
        result.add("Arrival time is required when marking as present")
    if status == AttendanceStatus.LATE.value and not arrival:
        result.add("Arrival time is required when marking as late")

    if arrival_ok and departure_ok and to_minutes(departure) <= to_minutes(arrival):
        result.add("Departure time must be after arrival time")

    return result
