import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from circulation.book import Book
from circulation.config import settings
from circulation.errors import BookNotFoundError, CirculationError, MemberNotFoundError, ServiceUnavailableError, error_from_payload
from circulation.fees import ReturnReceipt
from circulation.member import Member

logger = logging.getLogger(__name__)


class CirculationClient:
    """Synchronous client for the circulation API.

    Error responses are turned back into the typed errors the service raised,
    so ``except AlreadyIssuedError`` works the same locally and over HTTP.
    """

    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, retries: Optional[int] = None,
                 backoff: float = 0.5, client: Optional[httpx.Client] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.api_key
        self.retries = retries if retries is not None else settings.http_retries
        self.backoff = backoff
        # An injected client (e.g. FastAPI's TestClient) brings its own base URL
        self._client = client or httpx.Client(
            base_url=base_url or settings.api_url,
            timeout=timeout if timeout is not None else settings.http_timeout,
            follow_redirects=True,
        )

    # ------------------------- Books ------------------------- #
    def add_book(self, book_id: str, title: str, author: str) -> Book:
        data = self._post("/books", {"id": book_id, "title": title, "author": author})
        return Book.from_dict(data)

    def find_book(self, book_id: str) -> Optional[Book]:
        try:
            return Book.from_dict(self._get(f"/books/by-id/{quote(book_id, safe='')}"))
        except BookNotFoundError:
            return None

    def list_books(self) -> List[Book]:
        return [Book.from_dict(item) for item in self._get("/books")]

    def available_books(self) -> List[Book]:
        return [Book.from_dict(item) for item in self._get("/books/available")]

    def search_books(self, title: str) -> List[Book]:
        return [Book.from_dict(item) for item in self._get("/books/search", params={"title": title})]

    # ------------------------- Members ------------------------- #
    def register_member(self, member_id: str, name: str) -> Member:
        data = self._post("/members", {"id": member_id, "name": name})
        return Member.from_dict(data)

    def find_member(self, member_id: str) -> Optional[Member]:
        try:
            return Member.from_dict(self._get(f"/members/by-id/{quote(member_id, safe='')}"))
        except MemberNotFoundError:
            return None

    def list_members(self) -> List[Member]:
        return [Member.from_dict(item) for item in self._get("/members")]

    def search_members(self, name: str) -> List[Member]:
        return [Member.from_dict(item) for item in self._get("/members/search", params={"name": name})]

    # ------------------------- Loans ------------------------- #
    def issue_book(self, book_id: str, member_id: str) -> Book:
        data = self._post("/loans/issue", {"book_id": book_id, "member_id": member_id})
        return Book.from_dict(data)

    def return_book(self, book_id: str, member_id: str) -> ReturnReceipt:
        data = self._post("/loans/return", {"book_id": book_id, "member_id": member_id})
        return ReturnReceipt.from_dict(data)

    def get_statistics(self) -> Dict[str, Any]:
        return self._get("/stats")

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ------------------------- Transport ------------------------- #
    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET with exponential backoff on transport errors; reads are safe to repeat.

        At least one attempt is made whatever ``retries`` is set to.
        """
        attempts = max(1, self.retries)
        for attempt in range(attempts):
            try:
                resp = self._client.get(path, params=params)
                return self._handle(resp)
            except httpx.RequestError as exc:
                if attempt < attempts - 1:
                    wait = self.backoff * (2 ** attempt)
                    logger.debug("GET %s failed (%s), retrying in %.1fs", path, exc, wait)
                    time.sleep(wait)
                else:
                    raise ServiceUnavailableError(f"Circulation API unreachable: {exc}") from exc

    def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        try:
            resp = self._client.post(path, json=payload, headers={"X-API-Key": self.api_key})
        except httpx.RequestError as exc:
            raise ServiceUnavailableError(f"Circulation API unreachable: {exc}") from exc
        return self._handle(resp)

    @staticmethod
    def _handle(resp: httpx.Response) -> Any:
        if resp.status_code < 400:
            return resp.json()
        try:
            body = resp.json()
        except ValueError:
            body = {"detail": resp.text}
        if isinstance(body, dict) and body.get("kind"):
            raise error_from_payload(body)
        detail = body.get("detail") if isinstance(body, dict) else body
        raise CirculationError(f"HTTP {resp.status_code}: {detail}")


def get_client() -> CirculationClient:
    """Client pointed at ``settings.api_url``."""
    return CirculationClient()
