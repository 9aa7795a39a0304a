from src.music_school.music_school.attendance.factory import AttendanceStrategyFactory
from src.music_school.music_school.attendance.strategies.absent_strategy import AbsentStrategy
from src.music_school.music_school.attendance.strategies.late_strategy import LateStrategy
from src.music_school.music_school.attendance.strategies.present_strategy import PresentStrategy
from src.music_school.music_school.attendance.validation import validate_attendance
from src.music_school.music_school.core.enums import AttendanceStatus


def test_factory_arrival_within_grace_is_present():
    factory = AttendanceStrategyFactory()
    strategy = factory.for_arrival(lesson_start="10:00", arrival_time="10:10", grace_minutes=10)

    assert isinstance(strategy, PresentStrategy)


def test_factory_arrival_after_grace_is_late():
    factory = AttendanceStrategyFactory()
    strategy = factory.for_arrival(lesson_start="10:00", arrival_time="10:11", grace_minutes=10)

    assert isinstance(strategy, LateStrategy)
    decision = strategy.decide(lesson_start="10:00", arrival_time="10:11", grace_minutes=10)
    assert decision.status == AttendanceStatus.LATE
    assert decision.note == "Arrived 11 min late"


def test_factory_without_arrival_is_absent():
    strategy = AttendanceStrategyFactory().for_arrival(lesson_start="10:00", arrival_time=None, grace_minutes=10)
    assert isinstance(strategy, AbsentStrategy)


def test_validation_requires_arrival_for_present_and_late():
    assert validate_attendance({"status": "present"}).errors == ["Arrival time is required when marking as present"]
    assert validate_attendance({"status": "late"}).errors == ["Arrival time is required when marking as late"]
    assert validate_attendance({"status": "absent"}).is_valid


def test_validation_checks_times():
    result = validate_attendance({"status": "present", "arrival_time": "10:30", "departure_time": "10:00"})
    assert result.errors == ["Departure time must be after arrival time"]

    assert validate_attendance({"status": "gone"}).errors == ["Invalid attendance status"]
