from __future__ import annotations

from datetime import date
from typing import Dict, Optional


class Member:
    """A registered library member and the books they currently hold.

    ``issued_books`` maps a held book id to the date it was issued. The
    mapping is only changed through :meth:`issue_book` and :meth:`return_book`;
    callers get a copy.
    """

    def __init__(self, member_id: str, name: str, issued_books: Optional[Dict[str, date]] = None) -> None:
        self._id = member_id
        self.name = name
        self._issued_books: Dict[str, date] = dict(issued_books or {})

    @property
    def id(self) -> str:
        return self._id

    @property
    def issued_books(self) -> Dict[str, date]:
        return dict(self._issued_books)

    def issue_book(self, book_id: str, issue_date: date) -> None:
        self._issued_books[book_id] = issue_date

    def return_book(self, book_id: str) -> None:
        self._issued_books.pop(book_id, None)

    def issue_date_for(self, book_id: str) -> Optional[date]:
        return self._issued_books.get(book_id)

    def __str__(self) -> str:
        held = ", ".join(f"{bid}={day.isoformat()}" for bid, day in self._issued_books.items())
        return f"Member ID: {self.id}, Name: {self.name}, Issued Books: {{{held}}}"

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Member({self.id!r}, {self.name!r}, issued_books={self._issued_books!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "issued_books": {bid: day.isoformat() for bid, day in self._issued_books.items()},
        }

    @staticmethod
    def from_dict(data: dict) -> "Member":
        # Dates arrive as ISO strings over the wire
        held = {}
        for bid, day in (data.get("issued_books") or {}).items():
            held[bid] = day if isinstance(day, date) else date.fromisoformat(day)
        return Member(member_id=data["id"], name=data["name"], issued_books=held)
