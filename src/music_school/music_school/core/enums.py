from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    ADMIN = "admin"
    INSTRUCTOR = "instructor"


class RecordStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class LessonStatus(str, Enum):
    """Lesson lifecycle. DELETED lessons live in the trash until restored."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    DELETED = "deleted"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class BillingStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    BDO = "BDO"
    GCASH = "GCash"
    OTHER = "Other"
    CREDIT = "Credit"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class OverpayHandling(str, Enum):
    """What happens to the amount paid above an invoice total."""

    NEXT = "next"
    HOLD = "hold"


class CalendarView(str, Enum):
    YEAR = "year"
    MONTH = "month"
    WEEK = "week"
    DAY = "day"


class MessageType(str, Enum):
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"
    AUDIO = "audio"
