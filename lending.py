"""Borrow/return workflow and transaction reads.

A book's ``quantity`` is a counter of copies on the shelf. Borrowing takes one
copy and opens a transaction; returning closes the transaction and puts the
copy back. Both operations touch two rows, so each runs as one database
transaction, and the stock check is folded into the decrement itself
(``UPDATE ... WHERE quantity > 0``) rather than read first and written later.
The partial unique index on open transactions is the last line against a
user holding two open borrows of the same book.

Related user/book summaries are never loaded implicitly: pass
``with_details=True`` to get them.
"""

import logging
from datetime import timedelta

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

import models
import schemas
from errors import Conflict, Forbidden, NotFound

logger = logging.getLogger(__name__)

DEFAULT_LOAN_PERIOD = timedelta(days=7)

RETURN_POLICY_ANY = "any"
RETURN_POLICY_OWNER = "owner"
RETURN_POLICY_OWNER_OR_ADMIN = "owner_or_admin"


def _details_options():
    return (selectinload(models.Transaction.user), selectinload(models.Transaction.book))


def get_transaction(db: Session, transaction_id: int, with_details: bool = False) -> models.Transaction | None:
    stmt = (
        select(models.Transaction)
        .where(models.Transaction.id == transaction_id)
        .execution_options(populate_existing=True)
    )
    if with_details:
        stmt = stmt.options(*_details_options())
    return db.scalars(stmt).first()


def list_transactions(
    db: Session,
    user_id: int | None = None,
    status: str | None = None,
    with_details: bool = False,
) -> list[models.Transaction]:
    stmt = select(models.Transaction)
    if user_id is not None:
        stmt = stmt.where(models.Transaction.user_id == user_id)
    if status is not None:
        stmt = stmt.where(models.Transaction.status == status)
    if with_details:
        stmt = stmt.options(*_details_options())
    stmt = stmt.order_by(models.Transaction.borrow_date.desc(), models.Transaction.id.desc())
    return list(db.scalars(stmt).all())


def to_out(transaction: models.Transaction, with_details: bool = False) -> schemas.TransactionOut:
    out = schemas.TransactionOut(
        id=transaction.id,
        user_id=transaction.user_id,
        book_id=transaction.book_id,
        borrow_date=transaction.borrow_date,
        due_date=transaction.due_date,
        return_date=transaction.return_date,
        status=transaction.status,
    )
    if with_details:
        if transaction.user is not None:
            out.user = schemas.UserSummary.model_validate(transaction.user)
        if transaction.book is not None:
            out.book = schemas.BookSummary.model_validate(transaction.book)
    return out


def borrow(
    db: Session,
    user_id: int,
    book_id: int,
    loan_period: timedelta = DEFAULT_LOAN_PERIOD,
) -> models.Transaction:
    """Lend one copy of ``book_id`` to ``user_id``.

    Raises NotFound if the book does not exist, Conflict("out_of_stock") if
    no copy is left and Conflict("already_borrowed") if the user already has
    an open borrow of this book. On any failure nothing is written.
    """
    try:
        if db.get(models.Book, book_id, populate_existing=True) is None:
            raise NotFound("book_not_found")

        taken = db.execute(
            update(models.Book)
            .where(models.Book.id == book_id, models.Book.quantity > 0)
            .values(quantity=models.Book.quantity - 1, updated_at=models.utcnow())
            .execution_options(synchronize_session=False)
        )
        if taken.rowcount == 0:
            raise Conflict("out_of_stock")

        open_borrow = db.scalars(
            select(models.Transaction.id).where(
                models.Transaction.user_id == user_id,
                models.Transaction.book_id == book_id,
                models.Transaction.status == models.STATUS_BORROWED,
            )
        ).first()
        if open_borrow is not None:
            raise Conflict("already_borrowed")

        now = models.utcnow()
        transaction = models.Transaction(
            user_id=user_id,
            book_id=book_id,
            borrow_date=now,
            due_date=now + loan_period,
            status=models.STATUS_BORROWED,
        )
        db.add(transaction)
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("already_borrowed") from exc
    except Exception:
        db.rollback()
        raise

    db.commit()
    logger.info("User %s borrowed book %s (transaction %s)", user_id, book_id, transaction.id)
    return get_transaction(db, transaction.id, with_details=True)


def _check_return_policy(transaction: models.Transaction, actor: models.User | None, policy: str) -> None:
    if policy == RETURN_POLICY_ANY or actor is None:
        return
    if transaction.user_id == actor.id:
        return
    if policy == RETURN_POLICY_OWNER_OR_ADMIN and actor.is_admin:
        return
    raise Forbidden("return_forbidden")


def return_transaction(
    db: Session,
    transaction_id: int,
    actor: models.User | None = None,
    policy: str = RETURN_POLICY_ANY,
) -> models.Transaction:
    """Close an open borrow and put the copy back on the shelf.

    ``policy`` decides who besides the borrower may return it; ``actor`` is
    the caller (None skips the check, for internal use).
    """
    try:
        transaction = get_transaction(db, transaction_id)
        if transaction is None:
            raise NotFound("transaction_not_found")
        _check_return_policy(transaction, actor, policy)

        closed = db.execute(
            update(models.Transaction)
            .where(
                models.Transaction.id == transaction_id,
                models.Transaction.status == models.STATUS_BORROWED,
            )
            .values(status=models.STATUS_RETURNED, return_date=models.utcnow(), updated_at=models.utcnow())
            .execution_options(synchronize_session=False)
        )
        if closed.rowcount == 0:
            raise Conflict("already_returned")

        book_id = transaction.book_id
        if book_id is not None:
            db.execute(
                update(models.Book)
                .where(models.Book.id == book_id)
                .values(quantity=models.Book.quantity + 1, updated_at=models.utcnow())
                .execution_options(synchronize_session=False)
            )
    except Exception:
        db.rollback()
        raise

    db.commit()
    logger.info("Transaction %s returned (book %s)", transaction_id, book_id)
    return get_transaction(db, transaction_id, with_details=True)


def stats(db: Session) -> schemas.Stats:
    return schemas.Stats(
        total_books=db.scalar(select(func.count()).select_from(models.Book)),
        total_members=db.scalar(
            select(func.count()).select_from(models.User).where(models.User.role == models.ROLE_MEMBER)
        ),
        active_borrows=db.scalar(
            select(func.count())
            .select_from(models.Transaction)
            .where(models.Transaction.status == models.STATUS_BORROWED)
        ),
        total_transactions=db.scalar(select(func.count()).select_from(models.Transaction)),
    )
