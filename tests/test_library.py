import threading
from datetime import date

import pytest

from circulation.book import Book
from circulation.errors import (
    AlreadyIssuedError,
    BookNotFoundError,
    DuplicateBookError,
    DuplicateMemberError,
    ErrorKind,
    MemberNotFoundError,
    NotHeldError,
    NotIssuedError,
)
from circulation.member import Member


def _ids(items):
    return [item.id for item in items]


@pytest.fixture
def stocked(lib):
    lib.add_book(Book("B1", "Dune", "Herbert"))
    lib.add_book(Book("B2", "Emma", "Austen"))
    lib.register_member(Member("M1", "Alice"))
    lib.register_member(Member("M2", "Bob"))
    return lib


def test_dune_scenario(lib):
    lib.add_book(Book("B1", "Dune", "Herbert"))
    lib.register_member(Member("M1", "Alice"))

    book = lib.issue_book("B1", "M1")
    assert book.is_issued

    with pytest.raises(AlreadyIssuedError):
        lib.issue_book("B1", "M1")

    receipt = lib.return_book("B1", "M1")
    assert receipt.late_fee == 0.0
    assert _ids(lib.view_available_books()) == ["B1"]


def test_available_books_tracks_issue_state(stocked):
    assert _ids(stocked.view_available_books()) == ["B1", "B2"]

    stocked.issue_book("B1", "M1")
    assert _ids(stocked.view_available_books()) == ["B2"]

    stocked.return_book("B1", "M1")
    assert _ids(stocked.view_available_books()) == ["B1", "B2"]


def test_available_books_is_lazy_and_restartable(stocked):
    first = stocked.view_available_books()
    assert not isinstance(first, list)
    assert _ids(first) == ["B1", "B2"]
    # Exhausted iterator stays empty; a new call starts over
    assert _ids(first) == []
    assert _ids(stocked.view_available_books()) == ["B1", "B2"]


def test_issue_records_date_on_member(stocked, clock):
    stocked.issue_book("B1", "M1")
    member = stocked.find_member("M1")
    assert member.issued_books == {"B1": clock.today}
    assert stocked.find_book("B1").is_issued


def test_issue_already_issued_leaves_state_unchanged(stocked, clock):
    stocked.issue_book("B1", "M1")
    clock.advance(3)

    with pytest.raises(AlreadyIssuedError) as exc_info:
        stocked.issue_book("B1", "M2")

    assert exc_info.value.kind is ErrorKind.ALREADY_ISSUED
    assert stocked.find_member("M1").issued_books == {"B1": date(2024, 3, 1)}
    assert stocked.find_member("M2").issued_books == {}


def test_issue_unknown_book_or_member(stocked):
    with pytest.raises(BookNotFoundError) as exc_info:
        stocked.issue_book("nope", "M1")
    assert exc_info.value.kind is ErrorKind.BOOK_NOT_FOUND

    with pytest.raises(MemberNotFoundError) as exc_info:
        stocked.issue_book("B1", "nobody")
    assert exc_info.value.kind is ErrorKind.MEMBER_NOT_FOUND

    # The book stays available after the failed attempt
    assert not stocked.find_book("B1").is_issued


def test_not_found_errors_are_lookup_errors(stocked):
    with pytest.raises(LookupError):
        stocked.return_book("nope", "M1")


def test_return_not_issued_fails(stocked):
    with pytest.raises(NotIssuedError) as exc_info:
        stocked.return_book("B1", "M1")
    assert exc_info.value.kind is ErrorKind.NOT_ISSUED
    assert not stocked.find_book("B1").is_issued
    assert stocked.find_member("M1").issued_books == {}


def test_return_by_member_not_holding_book(stocked):
    stocked.issue_book("B1", "M1")

    with pytest.raises(NotHeldError) as exc_info:
        stocked.return_book("B1", "M2")

    assert exc_info.value.kind is ErrorKind.NOT_HELD
    assert stocked.find_book("B1").is_issued
    assert "B1" in stocked.find_member("M1").issued_books


def test_return_same_day_clears_state(stocked):
    stocked.issue_book("B1", "M1")
    receipt = stocked.return_book("B1", "M1")

    assert receipt.days_elapsed == 0
    assert receipt.late_fee == 0.0
    assert not receipt.is_late
    assert not stocked.find_book("B1").is_issued
    assert stocked.find_member("M1").issued_books == {}


def test_return_on_due_date_is_free(stocked, clock):
    stocked.issue_book("B1", "M1")
    clock.advance(14)
    receipt = stocked.return_book("B1", "M1")
    assert receipt.days_elapsed == 14
    assert receipt.late_fee == 0.0


def test_return_twenty_days_later_charges_six(stocked, clock):
    stocked.issue_book("B1", "M1")
    clock.advance(20)

    receipt = stocked.return_book("B1", "M1")

    assert receipt.issue_date == date(2024, 3, 1)
    assert receipt.return_date == date(2024, 3, 21)
    assert receipt.days_elapsed == 20
    assert receipt.days_overdue == 6
    assert receipt.late_fee == 6.0
    assert "B1" in _ids(stocked.view_available_books())


def test_explicit_dates_override_clock(stocked):
    stocked.issue_book("B2", "M2", on=date(2024, 1, 1))
    receipt = stocked.return_book("B2", "M2", on=date(2024, 1, 31))
    assert receipt.late_fee == 16.0


def test_custom_fee_policy(clock):
    from circulation.library import Library

    lib = Library(due_days=7, fee_per_day=0.5, clock=clock)
    lib.add_book(Book("B1", "Dune", "Herbert"))
    lib.register_member(Member("M1", "Alice"))
    lib.issue_book("B1", "M1")
    clock.advance(10)
    assert lib.return_book("B1", "M1").late_fee == 1.5


def test_duplicate_ids_rejected(stocked):
    with pytest.raises(DuplicateBookError):
        stocked.add_book(Book("B1", "Other", "Someone"))
    with pytest.raises(DuplicateMemberError):
        stocked.register_member(Member("M1", "Carol"))

    assert stocked.find_book("B1").title == "Dune"
    assert stocked.find_member("M1").name == "Alice"
    assert len(stocked.list_books()) == 2


def test_duplicate_errors_are_value_errors(stocked):
    with pytest.raises(ValueError, match="Book with ID B1 already exists."):
        stocked.add_book(Book("B1", "Dune", "Herbert"))


def test_search_books_case_insensitive_all_matches(lib):
    lib.add_book(Book("B1", "Dune", "Herbert"))
    lib.add_book(Book("B2", "Emma", "Austen"))
    lib.add_book(Book("B3", "DUNE", "Herbert"))
    lib.add_book(Book("B4", "Dune Messiah", "Herbert"))

    assert _ids(lib.search_books("dune")) == ["B1", "B3"]
    assert lib.search_books("dun") == []


def test_search_members_case_insensitive_all_matches(lib):
    lib.register_member(Member("M1", "Alice"))
    lib.register_member(Member("M2", "Bob"))
    lib.register_member(Member("M3", "alice"))

    assert _ids(lib.search_members("ALICE")) == ["M1", "M3"]
    assert lib.search_members("Carol") == []


def test_issued_flag_matches_exactly_one_holder(stocked, clock):
    stocked.issue_book("B1", "M1")
    stocked.issue_book("B2", "M2")
    clock.advance(2)
    stocked.return_book("B2", "M2")

    for book in stocked.list_books():
        holders = [m for m in stocked.list_members() if book.id in m.issued_books]
        assert len(holders) == (1 if book.is_issued else 0)


def test_find_missing_returns_none(lib):
    assert lib.find_book("B9") is None
    assert lib.find_member("M9") is None


def test_statistics(stocked):
    stocked.issue_book("B1", "M1")
    assert stocked.get_statistics() == {
        "total_books": 2,
        "issued_books": 1,
        "available_books": 1,
        "total_members": 2,
    }


def test_padded_ids_round_trip(lib):
    lib.add_book(Book(" B1 ", "Dune", "Herbert"))
    lib.register_member(Member(" M1 ", "Alice"))

    lib.issue_book(" B1 ", " M1 ")

    assert lib.find_book(" B1 ").is_issued
    assert lib.find_book("B1") is None
    assert lib.return_book(" B1 ", " M1 ").book.id == " B1 "


def test_search_query_is_not_trimmed(lib):
    lib.add_book(Book("B1", "Dune", "Herbert"))
    lib.register_member(Member("M1", "Alice"))

    assert lib.search_books(" Dune") == []
    assert lib.search_members("Alice ") == []


def test_reads_survive_concurrent_registration(lib):
    for n in range(200):
        lib.add_book(Book(f"B{n}", "Dune", "Herbert"))
        lib.register_member(Member(f"M{n}", "Alice"))

    errors = []
    done = threading.Event()

    def writer():
        try:
            for n in range(200, 2200):
                lib.add_book(Book(f"B{n}", "Dune", "Herbert"))
                lib.register_member(Member(f"M{n}", "Alice"))
        finally:
            done.set()

    def reader():
        try:
            while not done.is_set():
                lib.search_books("dune")
                lib.search_members("alice")
                list(lib.view_available_books())
                lib.list_books()
        except RuntimeError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(lib.search_books("DUNE")) == 2200


def test_return_dated_before_issue_is_not_overdue(stocked):
    stocked.issue_book("B1", "M1", on=date(2024, 3, 10))
    receipt = stocked.return_book("B1", "M1", on=date(2024, 3, 1))

    assert receipt.days_elapsed == -9
    assert receipt.days_overdue == 0
    assert receipt.late_fee == 0.0
