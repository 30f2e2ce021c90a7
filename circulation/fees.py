from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict

from circulation.book import Book

DUE_DAYS = 14
LATE_FEE_PER_DAY = 1.0


def days_between(start: date, end: date) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).days


def days_overdue(issue_date: date, return_date: date, due_days: int = DUE_DAYS) -> int:
    return max(0, days_between(issue_date, return_date) - due_days)


def calculate_late_fee(issue_date: date, return_date: date, due_days: int = DUE_DAYS,
                       fee_per_day: float = LATE_FEE_PER_DAY) -> float:
    """Fee for the days past the due period; 0.0 when returned in time."""
    return days_overdue(issue_date, return_date, due_days) * float(fee_per_day)


@dataclass
class ReturnReceipt:
    """Outcome of a successful return. The fee is reported, never stored."""
    book: Book
    member_id: str
    issue_date: date
    return_date: date
    days_elapsed: int
    days_overdue: int
    late_fee: float

    @property
    def is_late(self) -> bool:
        return self.days_overdue > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "book": self.book.to_dict(),
            "member_id": self.member_id,
            "issue_date": self.issue_date.isoformat(),
            "return_date": self.return_date.isoformat(),
            "days_elapsed": self.days_elapsed,
            "days_overdue": self.days_overdue,
            "late_fee": self.late_fee,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ReturnReceipt":
        return ReturnReceipt(
            book=Book.from_dict(data["book"]),
            member_id=data["member_id"],
            issue_date=date.fromisoformat(data["issue_date"]),
            return_date=date.fromisoformat(data["return_date"]),
            days_elapsed=int(data["days_elapsed"]),
            days_overdue=int(data["days_overdue"]),
            late_fee=float(data["late_fee"]),
        )
