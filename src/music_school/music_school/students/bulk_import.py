"""CSV bulk enrollment: parse the upload template into enrollment rows.

Template columns: FullName, Nickname, Birthdate, Gender, Instrument.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import date
from typing import IO, Optional, Union

import pandas as pd

from ..common.datetime_utils import calculate_age
from ..core.constants import INSTRUMENT_OPTIONS, MAX_BULK_UPLOAD
from ..core.enums import Gender

TEMPLATE_COLUMNS = ("FullName", "Nickname", "Birthdate", "Gender", "Instrument")
_COLUMN_TO_FIELD = {
    "fullname": "name",
    "nickname": "nickname",
    "birthdate": "birthdate",
    "gender": "gender",
    "instrument": "instrument",
}


@dataclass
class BulkParseResult:
    rows: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def template_csv() -> str:
    sample = [
        ("John Smith", "Johnny", "2010-05-15", "Male", "Piano"),
        ("Emily Johnson", "Em", "2012-08-22", "Female", "Guitar"),
        ("Michael Brown", "", "2015-03-10", "Male", "Violin"),
    ]
    return pd.DataFrame(sample, columns=list(TEMPLATE_COLUMNS)).to_csv(index=False)


def _suggest_instrument(value: str) -> Optional[str]:
    v = value.lower()
    for option in INSTRUMENT_OPTIONS:
        if option.lower() in v or v in option.lower():
            return option
    return None


def parse_bulk_csv(
    source: Union[str, bytes, IO],
    *,
    today: Optional[date] = None,
    max_rows: int = MAX_BULK_UPLOAD,
) -> BulkParseResult:
    """Read a template CSV. Rows come back enrollment-ready; problems are per row."""

    if isinstance(source, bytes):
        source = io.BytesIO(source)
    elif isinstance(source, str):
        source = io.StringIO(source)

    result = BulkParseResult()
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True, skip_blank_lines=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        result.errors.append(f"Could not read CSV file: {e}")
        return result

    df.columns = [str(c).strip().lower() for c in df.columns]
    df = df.rename(columns=_COLUMN_TO_FIELD)
    missing = [c for c in ("name", "instrument") if c not in df.columns]
    if missing:
        result.errors.append("CSV must have the columns: " + ", ".join(TEMPLATE_COLUMNS))
        return result

    df = df.fillna("").apply(lambda col: col.str.strip())
    df = df[(df["name"] != "") | (df["instrument"] != "")]

    if df.empty:
        result.errors.append("No student data found in CSV file")
        return result
    if len(df) > max_rows:
        result.errors.append(f"Batch size exceeds limit. Maximum {max_rows} students allowed, found {len(df)}.")
        return result

    seen: set[str] = set()
    # Spreadsheet row numbers (header is row 1), kept from before blank rows were dropped.
    for row_no, rec in zip(df.index + 2, df.to_dict(orient="records")):
        name = rec.get("name", "")
        instrument = rec.get("instrument", "")
        gender = rec.get("gender", "")
        problems: list[str] = []

        if not name:
            problems.append("Full name is required")
        if not instrument:
            problems.append("Instrument is required")
        elif instrument not in INSTRUMENT_OPTIONS:
            hint = _suggest_instrument(instrument)
            problems.append(f'Invalid instrument "{instrument}"' + (f' (Did you mean "{hint}"?)' if hint else ""))
        if gender not in {g.value for g in Gender}:
            problems.append('Gender must be "Male" or "Female"')
        if name.lower() in seen:
            problems.append(f'Duplicate name "{name}"')
        seen.add(name.lower())

        birthdate = None
        if rec.get("birthdate"):
            parsed = pd.to_datetime(rec["birthdate"], format="%Y-%m-%d", errors="coerce")
            if pd.isna(parsed):
                problems.append("Invalid birthdate format. Use YYYY-MM-DD")
            else:
                birthdate = parsed.date()

        if problems:
            result.errors.append(f"Row {row_no} ({name or 'Unknown'}): {', '.join(problems)}")
            continue

        result.rows.append(
            {
                "name": name,
                "nickname": rec.get("nickname") or None,
                "birthdate": birthdate,
                "age": calculate_age(birthdate, today) if birthdate else None,
                "gender": gender,
                "instrument": instrument,
            }
        )
    return result
