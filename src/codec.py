from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from errors import FormatError

CENT = Decimal("0.01")
#xs:decimal totalDigits 18, fractionDigits 5
MAX_INTEGER_DIGITS = 18
AMOUNT_RE = re.compile(r"[0-9]{1,18}(\.[0-9]{1,5})?")
DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
TIMESTAMP_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}")
DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


def render_amount(amount: Union[Decimal, int], field: Optional[str] = None) -> str:
    if isinstance(amount, bool) or not isinstance(amount, (Decimal, int)):
        raise TypeError(f"amount must be Decimal or int, not {type(amount).__name__}")
    value = Decimal(amount)
    if not value.is_finite():
        raise FormatError("amount is not a finite number", amount, field)
    if value < 0:
        raise FormatError("amount must not be negative", amount, field)
    if value and value.adjusted() >= MAX_INTEGER_DIGITS:
        raise FormatError(f"amount exceeds {MAX_INTEGER_DIGITS} integer digits", amount, field)
    try:
        rounded = value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise FormatError("amount cannot be rounded to cents", amount, field) from exc
    if rounded.adjusted() >= MAX_INTEGER_DIGITS:
        raise FormatError(f"amount exceeds {MAX_INTEGER_DIGITS} integer digits", amount, field)
    return f"{rounded:f}"


def parse_amount(text: str, field: Optional[str] = None) -> Decimal:
    if not isinstance(text, str) or not AMOUNT_RE.fullmatch(text):
        raise FormatError("malformed amount", text, field)
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise FormatError("malformed amount", text, field) from exc


def render_date(value: date) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_date(text: str, field: Optional[str] = None) -> date:
    if not isinstance(text, str) or not DATE_RE.fullmatch(text):
        raise FormatError("expected YYYY-MM-DD", text, field)
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError as exc:
        raise FormatError("not a calendar date", text, field) from exc


def render_timestamp(value: datetime) -> str:
    return value.replace(microsecond=0, tzinfo=None).isoformat()


def parse_timestamp(text: str, field: Optional[str] = None) -> datetime:
    if not isinstance(text, str) or not TIMESTAMP_RE.fullmatch(text):
        raise FormatError("expected YYYY-MM-DDTHH:MM:SS", text, field)
    try:
        return datetime.strptime(text, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise FormatError("not a valid timestamp", text, field) from exc
