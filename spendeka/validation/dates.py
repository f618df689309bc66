"""
Deterministic createdAt resolution.

The backend is asked to apply the date rules, but only some of them can be
checked without understanding the text. Those are re-applied here after
validation:

- no date mentioned at all, and the backend agreed it was the reference
  day → the reference datetime, exactly
- "today"/"yesterday" (or the Vietnamese equivalents) without a clock time
  or time of day → that day at 00:00:00 in the reference's timezone
- anything else (literal dates, weekdays, times, dates the patterns below
  do not know) → the backend's value

This is DETERMINISTIC - no LLM involvement.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional

from spendeka.models.transaction import parse_iso_datetime


# Longest phrases first so "day before yesterday" wins over "yesterday"
_RELATIVE_DAY_TERMS: tuple[tuple[str, int], ...] = (
    ("day before yesterday", -2),
    ("hôm kia", -2),
    ("yesterday", -1),
    ("hôm qua", -1),
    ("today", 0),
    ("hôm nay", 0),
)

_MONTHS = (
    "january|february|march|april|june|july|august|september|october|"
    "november|december|jan|feb|mar|apr|jun|jul|aug|sept|sep|oct|nov|dec"
)

_EXPLICIT_DATE_PATTERNS = [
    re.compile(r"\b\d{4}[-/.]\d{1,2}[-/.]\d{1,2}\b"),
    re.compile(r"\b\d{1,2}[-/]\d{1,2}(?:[-/]\d{2,4})?\b"),
    re.compile(r"\b\d{1,2}\.\d{1,2}\.\d{2,4}\b"),
    re.compile(rf"\b(?:{_MONTHS})\b\.?"),
    re.compile(r"\bmay\s+\d{1,2}\b|\b\d{1,2}\s+may\b"),
    # "on the 5th", "3rd of May", "05JAN24"
    re.compile(r"\b\d{1,2}(?:st|nd|rd|th)\b"),
    re.compile(rf"\b\d{{1,2}}(?:{_MONTHS}|may)\d{{2,4}}\b"),
    re.compile(
        r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday|"
        r"tomorrow|weekend|last\s+(?:week|month|year|night)|ago)\b"
    ),
    re.compile(r"\b(?:ngày|tháng)\s*\d{1,2}\b"),
    re.compile(r"\bthứ\s*(?:hai|ba|tư|năm|sáu|bảy|\d)\b|\bchủ nhật\b"),
    re.compile(r"\b(?:tuần trước|tháng trước|năm ngoái|ngày mai|hôm trước)\b"),
]

_TIME_PATTERNS = [
    re.compile(r"\b\d{1,2}:\d{2}(?::\d{2})?\b"),
    re.compile(r"\b\d{1,2}\s*(?:am|pm)\b"),
    re.compile(r"\b\d{1,2}\s*(?:h|giờ)(?:\s*\d{2})?\b"),
    re.compile(r"\b(?:noon|midday|midnight|morning|afternoon|evening|tonight|night)\b"),
    re.compile(r"\b(?:sáng|trưa|chiều|tối|đêm|khuya)\b"),
]


class DateCues(NamedTuple):
    """What the raw text says about when the transaction happened."""
    relative_offset_days: Optional[int]
    has_explicit_date: bool
    has_time: bool


def scan_date_cues(text: str) -> DateCues:
    """Find date and time hints in user text."""
    lowered = text.lower()

    offset = None
    for term, days in _RELATIVE_DAY_TERMS:
        if re.search(rf"\b{re.escape(term)}\b", lowered):
            offset = days
            break

    has_explicit_date = any(p.search(lowered) for p in _EXPLICIT_DATE_PATTERNS)
    has_time = any(p.search(lowered) for p in _TIME_PATTERNS)

    return DateCues(
        relative_offset_days=offset,
        has_explicit_date=has_explicit_date,
        has_time=has_time,
    )


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_iso_datetime(value: datetime) -> str:
    """
    Format as ISO 8601 with milliseconds, using "Z" for UTC.

    2024-01-02T10:00:00.000Z
    """
    value = ensure_aware(value)
    text = value.isoformat(timespec="milliseconds")
    if value.utcoffset() == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def _same_day(generated: str, reference: datetime) -> bool:
    """Whether `generated` falls on the reference's calendar day, in its timezone."""
    value = ensure_aware(parse_iso_datetime(generated))
    return value.astimezone(reference.tzinfo).date() == reference.date()


def resolve_created_at(text: str, reference: datetime, generated: str) -> str:
    """
    Return the createdAt a transaction parsed from `text` must carry.

    Args:
        text: The user text (or OCR text) the transaction was parsed from
        reference: Datetime captured at request start
        generated: createdAt as returned by the backend (already validated)
    """
    reference = ensure_aware(reference)
    cues = scan_date_cues(text)

    if cues.has_explicit_date:
        return generated

    if cues.relative_offset_days is None:
        if _same_day(generated, reference):
            return format_iso_datetime(reference)
        return generated

    if cues.has_time:
        return generated

    day = reference + timedelta(days=cues.relative_offset_days)
    midnight = day.replace(hour=0, minute=0, second=0, microsecond=0)
    return format_iso_datetime(midnight)
