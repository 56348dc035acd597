from datetime import datetime
from typing import Any, Literal

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict, Field, computed_field


# Largest id a 64-bit INTEGER column holds.
MAX_ID = 2**63 - 1


# Users
class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    role: Literal["member", "admin"] = "member"


class UserLogin(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=128)


class AuthResult(BaseModel):
    id: int
    username: str
    role: str
    token: str


class UserPublic(BaseModel):
    id: int
    username: str
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Books
class BookCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    author: str = Field(min_length=1, max_length=255)
    quantity: int = Field(default=1, ge=0)
    description: str = Field(default="", max_length=2000)
    isbn: str = Field(default="", max_length=32)
    category: str | None = Field(default=None, max_length=120)


class BookUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=255)
    author: str | None = Field(default=None, min_length=1, max_length=255)
    quantity: int | None = Field(default=None, ge=0)
    description: str | None = Field(default=None, max_length=2000)
    isbn: str | None = Field(default=None, max_length=32)
    category: str | None = Field(default=None, min_length=1, max_length=120)


class BookOut(BaseModel):
    id: int
    title: str
    author: str
    quantity: int
    description: str
    isbn: str
    category: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_available(self) -> bool:
        return self.quantity > 0


# Transactions
class BorrowRequest(BaseModel):
    book_id: int = Field(gt=0, le=MAX_ID)


class ReturnRequest(BaseModel):
    transaction_id: int = Field(gt=0, le=MAX_ID)


class UserSummary(BaseModel):
    id: int
    username: str

    model_config = ConfigDict(from_attributes=True)


class BookSummary(BaseModel):
    id: int
    title: str
    author: str

    model_config = ConfigDict(from_attributes=True)


class TransactionOut(BaseModel):
    id: int
    user_id: int | None
    book_id: int | None
    borrow_date: datetime
    due_date: datetime
    return_date: datetime | None
    status: str
    user: UserSummary | None = None
    book: BookSummary | None = None


class Stats(BaseModel):
    total_books: int
    total_members: int
    active_borrows: int
    total_transactions: int


# Envelope
def envelope(
    data: Any = None,
    message: str | None = None,
    count: int | None = None,
    success: bool = True,
) -> dict:
    """Build the ``{success, message?, data?, count?}`` response body."""
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if count is not None:
        body["count"] = count
    return body
