from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[0-9][0-9\s\-()]{6,19}$")
HHMM_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters long")
    return value


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} cannot exceed {max_len} characters")
    return value


def require_range(value: Optional[float], field_name: str, low: float, high: float) -> Optional[float]:
    if value is None:
        return None
    if not low <= value <= high:
        raise ValidationError(f"{field_name} must be between {low:g} and {high:g}")
    return value


def validate_email(value: Optional[str], field_name: str = "Email") -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return None
    if not EMAIL_RE.match(value):
        raise ValidationError(f"{field_name} is not a valid email address")
    return value.lower()


def validate_phone(value: Optional[str], field_name: str = "Phone") -> Optional[str]:
    value = (value or "").strip()
    if not value:
        return None
    if not PHONE_RE.match(value):
        raise ValidationError(f"{field_name} is not a valid phone number")
    return value


def is_hhmm(value: str) -> bool:
    return bool(HHMM_RE.match((value or "").strip()))


def parse_hhmm(value: Optional[str], field_name: str = "Time") -> Optional[str]:
    """Validate an optional HH:MM string and return it zero-padded."""

    v = (value or "").strip()
    if not v:
        return None
    if not is_hhmm(v):
        raise ValidationError(f"Invalid {field_name.lower()} format (use HH:MM)")
    return datetime.strptime(v, "%H:%M").strftime("%H:%M")


def sanitize_input(value: Optional[str]) -> str:
    return (value or "").strip().replace("<", "").replace(">", "")


@dataclass
class ValidationResult:
    """Collects every error of a form instead of stopping at the first one."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add(self, message: str) -> None:
        self.errors.append(message)

    def check(self, condition: bool, message: str) -> None:
        if not condition:
            self.errors.append(message)

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise ValidationError("; ".join(self.errors))
