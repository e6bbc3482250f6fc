"""Exceptions raised by stores and services.

Guard rejections are not exceptions; they travel as typed results.
"""

from __future__ import annotations


class ReportNotFoundError(KeyError):
    def __init__(self, report_id: str) -> None:
        super().__init__(f"Report {report_id!r} not found")
        self.report_id = report_id


class UserNotFoundError(KeyError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id!r} not found")
        self.user_id = user_id


class ConcurrencyConflictError(Exception):
    """A conditional save found a newer version than the one read."""

    def __init__(self, report_id: str, expected: int, actual: int) -> None:
        super().__init__(
            f"Report {report_id!r} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.report_id = report_id
        self.expected = expected
        self.actual = actual
