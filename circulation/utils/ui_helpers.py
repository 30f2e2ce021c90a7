import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "CIRCULATION_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_books(books: List[Any], empty_message: str = "No books found.") -> None:
    """Print books in the current output mode.
    - plain: one 'Book ID: ..., Title: ...' line per book, or ``empty_message``
    - json: array of id, title, author, is_issued
    - rich: table
    """
    mode = get_output_mode()

    if not books:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Issued", style="yellow")
        for b in books:
            table.add_row(b.id, b.title, b.author, "yes" if b.is_issued else "no")
        _console.print(table)
    else:
        for b in books:
            print(str(b))


def print_members(members: List[Any], empty_message: str = "No members found.") -> None:
    mode = get_output_mode()

    if not members:
        print(empty_message)
        return

    if mode == "json":
        print(json.dumps([m.to_dict() for m in members], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Members", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name", style="white")
        table.add_column("Issued Books", style="white")
        for m in members:
            held = ", ".join(f"{bid} ({day.isoformat()})" for bid, day in m.issued_books.items())
            table.add_row(m.id, m.name, held or "-")
        _console.print(table)
    else:
        for m in members:
            print(str(m))


def print_receipt(receipt: Any) -> None:
    """Print a return receipt; the penalty line only appears for late returns."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(receipt.to_dict(), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Book:[/] {receipt.book.title} ({receipt.book.id})\n"
            f"[bold]Member:[/] {receipt.member_id}\n"
            f"[bold]Issued:[/] {receipt.issue_date.isoformat()}  "
            f"[bold]Returned:[/] {receipt.return_date.isoformat()}\n"
            f"[bold]Days overdue:[/] {receipt.days_overdue}\n"
            f"[bold]Late fee:[/] ${receipt.late_fee:.2f}"
        )
        style = "yellow" if receipt.late_fee > 0 else "green"
        _console.print(Panel.fit(content, title="Book returned", border_style=style))
    else:
        if receipt.late_fee > 0:
            print(f"Late return penalty: ${receipt.late_fee:.2f}")
        print(f"Book returned: {receipt.book}")


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{k.replace('_', ' ').title()}:[/] {v}" for k, v in stats.items())
        _console.print(Panel.fit(content, title="Stats", border_style="blue"))
    else:
        print(f"Total Books: {stats.get('total_books', 0)}")
        print(f"Issued Books: {stats.get('issued_books', 0)}")
        print(f"Available Books: {stats.get('available_books', 0)}")
        print(f"Total Members: {stats.get('total_members', 0)}")
