from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from database import Base

ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"

STATUS_BORROWED = "borrowed"
STATUS_RETURNED = "returned"

DEFAULT_CATEGORY = "General"


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False)
    password = Column(String, nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_MEMBER)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Book(Base):
    __tablename__ = "books"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_books_quantity_non_negative"),)

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    description = Column(String, nullable=False, default="")
    isbn = Column(String(32), nullable=False, default="")
    category = Column(String(120), nullable=False, default=DEFAULT_CATEGORY)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_available(self) -> bool:
        return self.quantity > 0


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # One open borrow per (user, book).
        Index(
            "uq_transactions_open_borrow",
            "user_id",
            "book_id",
            unique=True,
            sqlite_where=text("status = 'borrowed'"),
            postgresql_where=text("status = 'borrowed'"),
        ),
        CheckConstraint("status IN ('borrowed', 'returned')", name="ck_transactions_status"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="SET NULL"), nullable=True, index=True)
    borrow_date = Column(DateTime, nullable=False, default=utcnow)
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    status = Column(String(16), nullable=False, default=STATUS_BORROWED)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship("User", lazy="raise")
    book = relationship("Book", lazy="raise")
