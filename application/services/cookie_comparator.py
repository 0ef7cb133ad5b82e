# application/services/cookie_comparator.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, List, Optional

from domain.cookies import EPOCH, CookieComparison, ExpectedCookie, SetCookie

DEFAULT_EXPIRES_TOLERANCE = timedelta(seconds=60)


@dataclass(frozen=True)
class FieldMismatch:
    field: str
    expected: Any
    actual: Any

    def __str__(self) -> str:
        return f"{self.field}: expected {self.expected!r}, actual {self.actual!r}"


@dataclass(frozen=True)
class CookieComparisonResult:
    expected: ExpectedCookie
    actual: SetCookie
    mismatches: List[FieldMismatch] = field(default_factory=list)

    @property
    def matched(self) -> bool:
        return not self.mismatches

    @property
    def name_matched(self) -> bool:
        return all(m.field != "name" for m in self.mismatches)


def name_matches(expected_name: str, actual_name: str, criteria: CookieComparison) -> bool:
    if CookieComparison.NAME_STARTS_WITH in criteria:
        return actual_name.startswith(expected_name)
    if CookieComparison.NAME_EQUALS in criteria:
        return actual_name == expected_name
    # name 系フラグが無い場合（DELETE 単体など）は prefix で照合する
    return actual_name.startswith(expected_name)


def _fmt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class CookieComparator:
    """
    Compare an expected cookie template against one actual Set-Cookie header.

    Every enabled check is evaluated; the result lists all failing fields.
    """

    def __init__(self, expires_tolerance: timedelta = DEFAULT_EXPIRES_TOLERANCE):
        self._tolerance = expires_tolerance

    def compare(
        self,
        expected: ExpectedCookie,
        actual: SetCookie,
        criteria: CookieComparison = CookieComparison.STRICT,
    ) -> CookieComparisonResult:
        mismatches: List[FieldMismatch] = []

        if not name_matches(expected.name, actual.name, criteria):
            mode = "starts_with" if CookieComparison.NAME_STARTS_WITH in criteria else "equals"
            mismatches.append(FieldMismatch("name", f"{mode} {expected.name}", actual.name))

        if CookieComparison.VALUE in criteria and expected.value != actual.value:
            mismatches.append(FieldMismatch("value", expected.value, actual.value))

        if CookieComparison.PATH in criteria and expected.path != actual.path:
            mismatches.append(FieldMismatch("path", expected.path, actual.path))

        if CookieComparison.SECURE in criteria and expected.secure != actual.secure:
            mismatches.append(FieldMismatch("secure", expected.secure, actual.secure))

        if CookieComparison.HTTP_ONLY in criteria and expected.http_only != actual.http_only:
            mismatches.append(FieldMismatch("http_only", expected.http_only, actual.http_only))

        if CookieComparison.EXPIRES in criteria and not self._expires_close(expected.expires, actual.expires):
            mismatches.append(FieldMismatch("expires", _fmt(expected.expires), _fmt(actual.expires)))

        if CookieComparison.DELETE in criteria and actual.expires != EPOCH:
            mismatches.append(FieldMismatch("expires (delete)", _fmt(EPOCH), _fmt(actual.expires)))

        return CookieComparisonResult(expected=expected, actual=actual, mismatches=mismatches)

    def _expires_close(self, expected: Optional[datetime], actual: Optional[datetime]) -> bool:
        if expected is None or actual is None:
            return expected is None and actual is None
        return abs(expected - actual) <= self._tolerance


def compare(
    expected: ExpectedCookie,
    actual: SetCookie,
    criteria: CookieComparison = CookieComparison.STRICT,
) -> CookieComparisonResult:
    return CookieComparator().compare(expected, actual, criteria)
