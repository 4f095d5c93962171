"""
Tolerant conversions for loosely typed record fields.
Nothing here raises: unparseable dates become "" and unparseable numbers become 0,
so one malformed record never aborts an export.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal, Optional, Union

OTHER_SENTINEL = "Other"

_DMY = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_YMD = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")

DateStyle = Literal["iso", "display"]
Number = Union[int, float]


def parse_date(value: Any) -> Optional[date]:
    """Return a date for a datetime/date, DD-MM-YYYY, YYYY-MM-DD or ISO timestamp; None otherwise."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        m = _DMY.match(text)
        if m:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        m = _YMD.match(text)
        if m:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None
    return None


def normalize_date(value: Any, style: DateStyle = "iso") -> str:
    """
    Canonical string form of a loosely typed date.
    style="iso" -> YYYY-MM-DD (storage and HTML form round-trips), style="display" -> DD-MM-YYYY (reports).
    Returns "" when the input cannot be parsed.
    """
    parsed = parse_date(value)
    if parsed is None:
        return ""
    if style == "display":
        return parsed.strftime("%d-%m-%Y")
    return parsed.isoformat()


def normalize_number(value: Any) -> Number:
    """Strip thousands separators and coerce to a number; 0 for None, blanks and garbage."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).replace(",", "").strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    if number.is_integer():
        return int(number)
    return number


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def storage_date(value: Any) -> Any:
    """ISO form for persistence. Blank values and text that is not a date are kept as entered."""
    if _is_blank(value):
        return value
    return normalize_date(value, "iso") or value


def storage_number(value: Any) -> Any:
    """Amount as a plain numeric string ("1,00,000" -> "100000"). Non-numeric text is kept as entered."""
    if _is_blank(value) or isinstance(value, bool):
        return value
    text = str(value).replace(",", "").strip()
    try:
        number = float(text)
    except ValueError:
        return value
    if math.isnan(number) or math.isinf(number):
        return value
    return str(normalize_number(number))


def normalize_for_storage(
    values: dict[str, Any],
    date_fields: tuple[str, ...] = (),
    number_fields: tuple[str, ...] = (),
) -> dict[str, Any]:
    """Copy of `values` with the named date and amount fields in canonical form; absent fields stay absent."""
    out = dict(values)
    for name in date_fields:
        if name in out:
            out[name] = storage_date(out[name])
    for name in number_fields:
        if name in out:
            out[name] = storage_number(out[name])
    return out


def resolve_other_field(value: Any, other_value: Any) -> Any:
    """Substitute the free-text override when a classification holds the "Other" sentinel."""
    if value == OTHER_SENTINEL:
        return other_value or ""
    return value


@dataclass(frozen=True)
class Choice:
    """A classification value: either one of the known options or free text entered under "Other"."""

    kind: Literal["known", "other"]
    value: str

    @classmethod
    def known(cls, value: str) -> "Choice":
        return cls("known", value)

    @classmethod
    def other(cls, text: str) -> "Choice":
        return cls("other", text)

    @classmethod
    def parse(cls, value: Any, other_value: Any = None) -> "Choice":
        resolved = resolve_other_field(value, other_value)
        if value == OTHER_SENTINEL:
            return cls.other(str(resolved))
        return cls.known("" if resolved is None else str(resolved))

    @property
    def is_other(self) -> bool:
        return self.kind == "other"

    def __str__(self) -> str:
        return self.value
