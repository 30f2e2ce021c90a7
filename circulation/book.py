from __future__ import annotations


class Book:
    """Represents a single book held by the library."""

    def __init__(self, book_id: str, title: str, author: str, is_issued: bool = False) -> None:
        self._id = book_id
        self.title = title
        self.author = author
        self.is_issued = is_issued

    @property
    def id(self) -> str:
        return self._id

    def issue(self) -> None:
        self.is_issued = True

    def return_book(self) -> None:
        self.is_issued = False

    def __str__(self) -> str:
        issued = "true" if self.is_issued else "false"
        return f"Book ID: {self.id}, Title: {self.title}, Author: {self.author}, Issued: {issued}"

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Book({self.id!r}, {self.title!r}, {self.author!r}, is_issued={self.is_issued!r})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "is_issued": self.is_issued,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            book_id=data["id"],
            title=data["title"],
            author=data["author"],
            is_issued=bool(data.get("is_issued", False)),
        )
