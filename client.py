"""HTTP client for the library lending API.

Mirrors the calls the mobile app makes. The session token is kept in memory
only; persisting it between runs is left to the caller.

    client = LibraryClient("http://localhost:5000")
    client.login("member", "member123")
    for book in client.get_books():
        ...
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    """The API answered with ``success: false``."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class LibraryClient:
    def __init__(
        self,
        base_url: str = "http://localhost:5000",
        token: Optional[str] = None,
        http: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._owns_http = http is None
        self.token = token
        self.user: Optional[dict] = None

    def __enter__(self) -> "LibraryClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self._http.request(method, path, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {"success": False, "message": response.text or response.reason_phrase}
        if response.is_error or not body.get("success", False):
            raise ApiError(response.status_code, body.get("message", response.reason_phrase))
        return body

    def _data(self, method: str, path: str, **kwargs) -> Any:
        return self._request(method, path, **kwargs).get("data")

    # Auth
    def _remember(self, data: dict) -> dict:
        self.token = data["token"]
        self.user = {key: data[key] for key in ("id", "username", "role")}
        return data

    def register(self, username: str, password: str, role: str = "member") -> dict:
        return self._remember(
            self._data("POST", "/register", json={"username": username, "password": password, "role": role})
        )

    def login(self, username: str, password: str) -> dict:
        return self._remember(self._data("POST", "/login", json={"username": username, "password": password}))

    def logout(self) -> None:
        self.token = None
        self.user = None

    # Books
    def get_books(self, q: Optional[str] = None, category: Optional[str] = None) -> list:
        params = {key: value for key, value in (("q", q), ("category", category)) if value}
        return self._data("GET", "/books", params=params)

    def get_book(self, book_id: int) -> dict:
        return self._data("GET", f"/books/{book_id}")

    def add_book(self, **book: Any) -> dict:
        return self._data("POST", "/books", json=book)

    def update_book(self, book_id: int, **changes: Any) -> dict:
        return self._data("PUT", f"/books/{book_id}", json=changes)

    def delete_book(self, book_id: int) -> None:
        self._request("DELETE", f"/books/{book_id}")

    # Borrow / return
    def borrow_book(self, book_id: int) -> dict:
        return self._data("POST", "/borrow", json={"book_id": book_id})

    def return_book(self, transaction_id: int) -> dict:
        return self._data("POST", "/return", json={"transaction_id": transaction_id})

    def get_my_borrowed(self) -> list:
        return self._data("GET", "/my-borrowed")

    def get_history(self, user_id: int) -> list:
        return self._data("GET", f"/history/{user_id}")

    # Admin
    def get_borrowed_books(self, status: Optional[str] = None) -> list:
        params = {"status": status} if status else {}
        return self._data("GET", "/admin/borrowed-books", params=params)

    def get_users(self) -> list:
        return self._data("GET", "/users")

    def delete_user(self, user_id: int) -> None:
        self._request("DELETE", f"/users/{user_id}")

    def get_stats(self) -> dict:
        return self._data("GET", "/admin/stats")

    # System
    def health(self) -> dict:
        return self._data("GET", "/api/health")
