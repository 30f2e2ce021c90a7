import logging
import subprocess
import sys
import webbrowser
from datetime import date, datetime
from typing import NoReturn, Optional

import typer

from circulation.config import settings, setup_logging
from circulation.errors import CirculationError
from circulation.fees import calculate_late_fee, days_overdue
from circulation.services.http_client import get_client
from circulation.utils.ui_helpers import (
    print_books,
    print_members,
    print_receipt,
    print_stats_result,
    set_output_mode,
)

APP_NAME = "Library Circulation CLI"

logger = logging.getLogger(__name__)

app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    setup_logging(level="WARNING")
    if output:
        set_output_mode(output)


def _fail(operation: str, exc: CirculationError) -> NoReturn:
    logger.debug("%s failed with kind=%s", operation, getattr(exc, "kind", None))
    print(f"{operation} operation failed: {exc}")
    raise typer.Exit(code=1)


@app.command("add-book")
def cli_add_book(book_id: str, title: str, author: str):
    """Add a book to the library."""
    with get_client() as client:
        try:
            book = client.add_book(book_id, title, author)
        except CirculationError as e:
            _fail("Add book", e)
        print(f"Book added: {book}")


@app.command("register")
def cli_register(member_id: str, name: str):
    """Register a new member."""
    with get_client() as client:
        try:
            member = client.register_member(member_id, name)
        except CirculationError as e:
            _fail("Register", e)
        print(f"Member registered: {member}")


@app.command("issue")
def cli_issue(book_id: str, member_id: str):
    """Issue a book to a member, recording today's date."""
    with get_client() as client:
        try:
            book = client.issue_book(book_id, member_id)
        except CirculationError as e:
            _fail("Issue", e)
        print(f"Book issued: {book}")


@app.command("return")
def cli_return(book_id: str, member_id: str):
    """Return a book and report any late fee."""
    with get_client() as client:
        try:
            receipt = client.return_book(book_id, member_id)
        except CirculationError as e:
            _fail("Return", e)
        print_receipt(receipt)


@app.command("available")
def cli_available():
    """List books that are not issued."""
    with get_client() as client:
        try:
            books = client.available_books()
        except CirculationError as e:
            _fail("List", e)
        print_books(books, empty_message="No available books.")


@app.command("search-books")
def cli_search_books(title: str = typer.Argument(..., help="Exact title (case-insensitive)")):
    """Find all books with the given title."""
    with get_client() as client:
        try:
            books = client.search_books(title)
        except CirculationError as e:
            _fail("Search", e)
        print_books(books, empty_message=f"No books titled '{title}'.")


@app.command("search-members")
def cli_search_members(name: str = typer.Argument(..., help="Exact name (case-insensitive)")):
    """Find all members with the given name."""
    with get_client() as client:
        try:
            members = client.search_members(name)
        except CirculationError as e:
            _fail("Search", e)
        print_members(members, empty_message=f"No members named '{name}'.")


@app.command("stats")
def cli_stats():
    """Show library statistics."""
    with get_client() as client:
        try:
            stats = client.get_statistics()
        except CirculationError as e:
            _fail("Stats", e)
        print_stats_result(stats)


@app.command("late-fee")
def cli_late_fee(
    issued: datetime = typer.Argument(..., formats=["%Y-%m-%d"], help="Issue date (YYYY-MM-DD)"),
    returned: Optional[datetime] = typer.Argument(None, formats=["%Y-%m-%d"], help="Return date, default today"),
):
    """Work out the late fee for a loan without contacting the server."""
    issue_date = issued.date()
    return_date = returned.date() if returned else date.today()
    overdue = days_overdue(issue_date, return_date, settings.due_days)
    fee = calculate_late_fee(issue_date, return_date, settings.due_days, settings.late_fee_per_day)
    print(f"Days overdue: {overdue}")
    print(f"Late fee: ${fee:.2f}")


@app.command("serve")
def serve(
    host: str = typer.Option(settings.api_host, help="Host to bind"),
    port: int = typer.Option(settings.api_port, help="Port to bind"),
    open_browser: bool = typer.Option(False, "--open", help="Open the API docs in a browser"),
):
    """Run the circulation API with uvicorn."""
    url = f"http://{host}:{port}"
    print(f"Starting circulation API on {url}")
    if open_browser:
        webbrowser.open(f"{url}/docs")
    subprocess.run([sys.executable, "-m", "uvicorn", "circulation.api:app", "--host", host, "--port", str(port)])


def main():
    app()


if __name__ == "__main__":
    main()
