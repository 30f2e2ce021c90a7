import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Annotated, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field, StringConstraints

from circulation.book import Book
from circulation.config import settings, setup_logging
from circulation.errors import BookNotFoundError, CirculationError, ErrorKind, MemberNotFoundError
from circulation.library import Library
from circulation.member import Member

logger = logging.getLogger(__name__)

library = Library(due_days=settings.due_days, fee_per_day=settings.late_fee_per_day)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("%s %s started (due period %d days, fee %.2f/day)",
                settings.app_name, settings.app_version, library.due_days, library.fee_per_day)
    yield
    logger.info("%s stopped; in-memory state discarded", settings.app_name)


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)


# --- Error mapping ---
STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.BOOK_NOT_FOUND: 404,
    ErrorKind.MEMBER_NOT_FOUND: 404,
    ErrorKind.ALREADY_ISSUED: 409,
    ErrorKind.NOT_ISSUED: 409,
    ErrorKind.NOT_HELD: 409,
    ErrorKind.DUPLICATE_BOOK: 400,
    ErrorKind.DUPLICATE_MEMBER: 400,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
}


@app.exception_handler(CirculationError)
async def circulation_error_handler(request: Request, exc: CirculationError):
    status = STATUS_BY_KIND.get(exc.kind, 400)
    kind = exc.kind.value if exc.kind else None
    return JSONResponse(status_code=status, content={"detail": str(exc), "kind": kind, "params": exc.params()})


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(api_key: str = Security(api_key_header)):
    """Dependency that validates the API key on mutating endpoints."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


# --- Models ---
# Surrounding whitespace is stripped before the emptiness check
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class BookModel(BaseModel):
    id: str
    title: str
    author: str
    is_issued: bool = False


class BookCreateModel(BaseModel):
    id: NonBlankStr
    title: NonBlankStr
    author: NonBlankStr


class MemberModel(BaseModel):
    id: str
    name: str
    issued_books: Dict[str, date] = Field(default_factory=dict)


class MemberCreateModel(BaseModel):
    id: NonBlankStr
    name: NonBlankStr


class LoanRequest(BaseModel):
    book_id: NonBlankStr
    member_id: NonBlankStr


class ReturnReceiptModel(BaseModel):
    book: BookModel
    member_id: str
    issue_date: date
    return_date: date
    days_elapsed: int
    days_overdue: int
    late_fee: float


class StatsModel(BaseModel):
    total_books: int
    issued_books: int
    available_books: int
    total_members: int


# --- Health ---
@app.get("/health")
def health():
    stats = library.get_statistics()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total_books": stats["total_books"],
        "total_members": stats["total_members"],
    }


@app.get("/stats", response_model=StatsModel)
def get_library_stats():
    return StatsModel(**library.get_statistics())


# --- Books ---
@app.get("/books", response_model=List[BookModel])
def get_books():
    return [BookModel(**b.to_dict()) for b in library.list_books()]


@app.get("/books/available", response_model=List[BookModel])
def get_available_books():
    return [BookModel(**b.to_dict()) for b in library.view_available_books()]


@app.get("/books/search", response_model=List[BookModel])
def search_books(title: str = Query(..., min_length=1, description="Exact title, case-insensitive")):
    return [BookModel(**b.to_dict()) for b in library.search_books(title)]


@app.get("/books/by-id/{book_id:path}", response_model=BookModel)
def get_book(book_id: str):
    book = library.find_book(book_id)
    if not book:
        raise BookNotFoundError(book_id)
    return BookModel(**book.to_dict())


@app.post("/books", response_model=BookModel, dependencies=[Depends(get_api_key)])
def add_book(payload: BookCreateModel):
    book = library.add_book(Book(payload.id, payload.title, payload.author))
    return BookModel(**book.to_dict())


# --- Members ---
@app.get("/members", response_model=List[MemberModel])
def get_members():
    return [MemberModel(**m.to_dict()) for m in library.list_members()]


@app.get("/members/search", response_model=List[MemberModel])
def search_members(name: str = Query(..., min_length=1, description="Exact name, case-insensitive")):
    return [MemberModel(**m.to_dict()) for m in library.search_members(name)]


@app.get("/members/by-id/{member_id:path}", response_model=MemberModel)
def get_member(member_id: str):
    member = library.find_member(member_id)
    if not member:
        raise MemberNotFoundError(member_id)
    return MemberModel(**member.to_dict())


@app.post("/members", response_model=MemberModel, dependencies=[Depends(get_api_key)])
def register_member(payload: MemberCreateModel):
    member = library.register_member(Member(payload.id, payload.name))
    return MemberModel(**member.to_dict())


# --- Loans ---
@app.post("/loans/issue", response_model=BookModel, dependencies=[Depends(get_api_key)])
def issue_book(payload: LoanRequest):
    book = library.issue_book(payload.book_id, payload.member_id)
    return BookModel(**book.to_dict())


@app.post("/loans/return", response_model=ReturnReceiptModel, dependencies=[Depends(get_api_key)])
def return_book(payload: LoanRequest):
    receipt = library.return_book(payload.book_id, payload.member_id)
    return ReturnReceiptModel(**receipt.to_dict())
