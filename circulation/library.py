import logging
from datetime import date
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from circulation.book import Book
from circulation.errors import (
    AlreadyIssuedError,
    BookNotFoundError,
    DuplicateBookError,
    DuplicateMemberError,
    MemberNotFoundError,
    NotHeldError,
    NotIssuedError,
)
from circulation.fees import (
    DUE_DAYS,
    LATE_FEE_PER_DAY,
    ReturnReceipt,
    calculate_late_fee,
    days_between,
    days_overdue,
)
from circulation.member import Member

logger = logging.getLogger(__name__)


class Library:
    """Owns the books and members and mediates every issue and return.

    Books and members are kept in dicts keyed by id, so lookups are direct and
    listings follow insertion order. Every operation checks its preconditions
    before touching any record, so a failed call leaves state unchanged.
    """

    def __init__(self, due_days: int = DUE_DAYS, fee_per_day: float = LATE_FEE_PER_DAY,
                 clock: Callable[[], date] = date.today) -> None:
        self.due_days = due_days
        self.fee_per_day = fee_per_day
        self.clock = clock
        self._books: Dict[str, Book] = {}
        self._members: Dict[str, Member] = {}
        self._lock = RLock()

    # ------------------------- Registration ------------------------- #
    def add_book(self, book: Book) -> Book:
        """Add a pre-constructed Book. Duplicate ids are rejected."""
        with self._lock:
            if book.id in self._books:
                logger.warning("Rejected duplicate book id %s", book.id)
                raise DuplicateBookError(book.id)
            self._books[book.id] = book
        logger.info("Book added: %s", book)
        return book

    def register_member(self, member: Member) -> Member:
        """Register a pre-constructed Member. Duplicate ids are rejected."""
        with self._lock:
            if member.id in self._members:
                logger.warning("Rejected duplicate member id %s", member.id)
                raise DuplicateMemberError(member.id)
            self._members[member.id] = member
        logger.info("Member registered: %s", member)
        return member

    # ------------------------- Circulation ------------------------- #
    def issue_book(self, book_id: str, member_id: str, on: Optional[date] = None) -> Book:
        """Issue ``book_id`` to ``member_id``, recording ``on`` (default: today)."""
        with self._lock:
            book, member = self._require(book_id, member_id)
            if book.is_issued:
                logger.warning("Issue failed: book %s is already issued", book_id)
                raise AlreadyIssuedError(book_id)

            issue_date = on or self.clock()
            book.issue()
            member.issue_book(book.id, issue_date)
        logger.info("Book issued to %s on %s: %s", member.id, issue_date.isoformat(), book)
        return book

    def return_book(self, book_id: str, member_id: str, on: Optional[date] = None) -> ReturnReceipt:
        """Take ``book_id`` back from ``member_id`` and work out any late fee.

        The fee is (days elapsed - due period) * daily rate once the due period
        has passed, otherwise 0.0. It is reported on the receipt only.
        """
        with self._lock:
            book, member = self._require(book_id, member_id)
            if not book.is_issued:
                logger.warning("Return failed: book %s is not issued", book_id)
                raise NotIssuedError(book_id)

            issue_date = member.issue_date_for(book.id)
            if issue_date is None:
                logger.warning("Return failed: book %s is not held by member %s", book_id, member_id)
                raise NotHeldError(book_id, member_id)

            return_date = on or self.clock()
            elapsed = days_between(issue_date, return_date)
            fee = calculate_late_fee(issue_date, return_date, self.due_days, self.fee_per_day)

            book.return_book()
            member.return_book(book.id)

        if fee > 0:
            logger.info("Late return penalty for book %s: $%.2f", book.id, fee)
        logger.info("Book returned by %s: %s", member.id, book)
        return ReturnReceipt(
            book=book,
            member_id=member.id,
            issue_date=issue_date,
            return_date=return_date,
            days_elapsed=elapsed,
            days_overdue=days_overdue(issue_date, return_date, self.due_days),
            late_fee=fee,
        )

    # ------------------------- Queries ------------------------- #
    def view_available_books(self) -> Iterator[Book]:
        """Yield books that are not issued, in insertion order.

        Each call starts a new pass over a snapshot of the collection.
        """
        for book in self._snapshot(self._books):
            if not book.is_issued:
                yield book

    def search_books(self, title: str) -> List[Book]:
        """All books whose title equals ``title``, ignoring case."""
        wanted = title.casefold()
        return [b for b in self._snapshot(self._books) if b.title.casefold() == wanted]

    def search_members(self, name: str) -> List[Member]:
        """All members whose name equals ``name``, ignoring case."""
        wanted = name.casefold()
        return [m for m in self._snapshot(self._members) if m.name.casefold() == wanted]

    def find_book(self, book_id: str) -> Optional[Book]:
        with self._lock:
            return self._books.get(book_id)

    def find_member(self, member_id: str) -> Optional[Member]:
        with self._lock:
            return self._members.get(member_id)

    def list_books(self) -> List[Book]:
        return self._snapshot(self._books)

    def list_members(self) -> List[Member]:
        return self._snapshot(self._members)

    def get_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        with self._lock:
            total = len(self._books)
            issued = sum(1 for b in self._books.values() if b.is_issued)
            return {
                "total_books": total,
                "issued_books": issued,
                "available_books": total - issued,
                "total_members": len(self._members),
            }

    # ------------------------- Utilities ------------------------- #
    def _snapshot(self, records: Dict[str, Any]) -> List[Any]:
        with self._lock:
            return list(records.values())

    def _require(self, book_id: str, member_id: str) -> Tuple[Book, Member]:
        book = self._books.get(book_id)
        if book is None:
            logger.warning("Book %s not found", book_id)
            raise BookNotFoundError(book_id)
        member = self._members.get(member_id)
        if member is None:
            logger.warning("Member %s not found", member_id)
            raise MemberNotFoundError(member_id)
        return book, member
