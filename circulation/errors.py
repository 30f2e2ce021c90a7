"""Error kinds raised by the circulation service.

Every failure carries an :class:`ErrorKind` so callers (the API, the HTTP
client, the CLI) can branch on the cause instead of parsing messages.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple


class ErrorKind(str, Enum):
    BOOK_NOT_FOUND = "book_not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    ALREADY_ISSUED = "already_issued"
    NOT_ISSUED = "not_issued"
    NOT_HELD = "not_held"
    DUPLICATE_BOOK = "duplicate_book"
    DUPLICATE_MEMBER = "duplicate_member"
    SERVICE_UNAVAILABLE = "service_unavailable"


class CirculationError(Exception):
    """Base class for all circulation failures."""

    kind: Optional[ErrorKind] = None
    # Constructor arguments, sent alongside the message in API error bodies
    fields: Tuple[str, ...] = ()

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)

    def params(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in self.fields}


class BookNotFoundError(CirculationError, LookupError):
    kind = ErrorKind.BOOK_NOT_FOUND
    fields = ("book_id",)

    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with ID {book_id} not found.")
        self.book_id = book_id


class MemberNotFoundError(CirculationError, LookupError):
    kind = ErrorKind.MEMBER_NOT_FOUND
    fields = ("member_id",)

    def __init__(self, member_id: str) -> None:
        super().__init__(f"Member with ID {member_id} not found.")
        self.member_id = member_id


class AlreadyIssuedError(CirculationError):
    kind = ErrorKind.ALREADY_ISSUED
    fields = ("book_id",)

    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with ID {book_id} is already issued.")
        self.book_id = book_id


class NotIssuedError(CirculationError):
    kind = ErrorKind.NOT_ISSUED
    fields = ("book_id",)

    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with ID {book_id} is not issued.")
        self.book_id = book_id


class NotHeldError(CirculationError):
    """The book is issued, but not to the member returning it."""

    kind = ErrorKind.NOT_HELD
    fields = ("book_id", "member_id")

    def __init__(self, book_id: str, member_id: str) -> None:
        super().__init__(f"Book with ID {book_id} is not held by member {member_id}.")
        self.book_id = book_id
        self.member_id = member_id


class DuplicateBookError(CirculationError, ValueError):
    kind = ErrorKind.DUPLICATE_BOOK
    fields = ("book_id",)

    def __init__(self, book_id: str) -> None:
        super().__init__(f"Book with ID {book_id} already exists.")
        self.book_id = book_id


class DuplicateMemberError(CirculationError, ValueError):
    kind = ErrorKind.DUPLICATE_MEMBER
    fields = ("member_id",)

    def __init__(self, member_id: str) -> None:
        super().__init__(f"Member with ID {member_id} already exists.")
        self.member_id = member_id


class ServiceUnavailableError(CirculationError):
    kind = ErrorKind.SERVICE_UNAVAILABLE


_BY_KIND = {
    ErrorKind.BOOK_NOT_FOUND: BookNotFoundError,
    ErrorKind.MEMBER_NOT_FOUND: MemberNotFoundError,
    ErrorKind.ALREADY_ISSUED: AlreadyIssuedError,
    ErrorKind.NOT_ISSUED: NotIssuedError,
    ErrorKind.NOT_HELD: NotHeldError,
    ErrorKind.DUPLICATE_BOOK: DuplicateBookError,
    ErrorKind.DUPLICATE_MEMBER: DuplicateMemberError,
}


def error_from_payload(payload: dict) -> CirculationError:
    """Rebuild a typed error from an API error body.

    The body carries ``detail``, ``kind`` and ``params`` (the constructor
    arguments). Known kinds are rebuilt through their own constructor so
    attributes like ``book_id`` survive the trip; the server message is kept
    verbatim. Unknown kinds become a plain :class:`CirculationError`.
    """
    message = str(payload.get("detail", "Unknown error"))
    try:
        kind = ErrorKind(payload.get("kind"))
    except ValueError:
        return CirculationError(message)
    cls = _BY_KIND.get(kind)
    if cls is None:
        return CirculationError(message, kind=kind)
    params = payload.get("params") or {}
    try:
        err = cls(**{name: params[name] for name in cls.fields})
    except KeyError:
        return CirculationError(message, kind=kind)
    err.args = (message,)
    return err
