from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, time
from typing import Optional

RE_DATE = re.compile(
    r"^(?P<year>\d{4})\s*[\/\-.年]?\s*(?P<month>\d{1,2})\s*[\/\-.月]?\s*(?P<day>\d{1,2})\s*日?$"
)
RE_TIME = re.compile(r"^(?P<hour>\d{1,2})\s*[:時]?\s*(?P<minute>\d{2})\s*分?$")
RE_SEPARATORS = re.compile(r"[\s\-\/.:年月日時分]")


@dataclass(frozen=True, slots=True)
class DateInput:
    raw: str
    value: Optional[date]

    @property
    def is_valid(self) -> bool:
        return self.value is not None

    @property
    def compact(self) -> str:
        if self.value is not None:
            return self.value.strftime("%Y%m%d")
        return RE_SEPARATORS.sub("", _normalize(self.raw))


@dataclass(frozen=True, slots=True)
class TimeInput:
    raw: str
    value: Optional[time]

    @property
    def is_valid(self) -> bool:
        return self.value is not None

    @property
    def compact(self) -> str:
        if self.value is not None:
            return self.value.strftime("%H%M")
        return RE_SEPARATORS.sub("", _normalize(self.raw))


def _normalize(text: str) -> str:
    return unicodedata.normalize("NFKC", text or "").strip()


def parse_date_input(text: str) -> DateInput:
    """Parse a user-typed date such as 2023-03-08, 2023/3/8 or 2023年3月8日.

    Unparseable input is kept as raw text; callers decide whether to reject it.
    """
    normalized = _normalize(text)
    match = RE_DATE.match(normalized)
    if match is None:
        return DateInput(raw=text, value=None)
    try:
        value = date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
    except ValueError:
        return DateInput(raw=text, value=None)
    return DateInput(raw=text, value=value)


def parse_time_input(text: str) -> TimeInput:
    normalized = _normalize(text)
    match = RE_TIME.match(normalized)
    if match is None:
        return TimeInput(raw=text, value=None)
    try:
        value = time(int(match.group("hour")), int(match.group("minute")))
    except ValueError:
        return TimeInput(raw=text, value=None)
    return TimeInput(raw=text, value=value)
