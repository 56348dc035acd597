from datetime import timedelta
from typing import Literal

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

import models, schemas, auth, lending
from config import Settings
from database import get_db
from errors import Forbidden
from messages import translate_for
from redis_client import invalidate_books_cache

router = APIRouter(tags=["Transactions"])


@router.post("/borrow", status_code=status.HTTP_201_CREATED)
def borrow_book(
    request: Request,
    payload: schemas.BorrowRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
    settings: Settings = Depends(auth.get_settings),
):
    transaction = lending.borrow(
        db,
        user_id=user.id,
        book_id=payload.book_id,
        loan_period=timedelta(days=settings.LOAN_PERIOD_DAYS),
    )
    invalidate_books_cache(request.app.state.redis)
    return schemas.envelope(
        lending.to_out(transaction, with_details=True),
        message=translate_for(request, "borrow_success"),
    )


@router.post("/return")
def return_book(
    request: Request,
    payload: schemas.ReturnRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
    settings: Settings = Depends(auth.get_settings),
):
    transaction = lending.return_transaction(
        db,
        payload.transaction_id,
        actor=user,
        policy=settings.RETURN_POLICY,
    )
    invalidate_books_cache(request.app.state.redis)
    return schemas.envelope(
        lending.to_out(transaction, with_details=True),
        message=translate_for(request, "return_success"),
    )


@router.get("/my-borrowed")
def my_borrowed(
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
):
    transactions = lending.list_transactions(
        db, user_id=user.id, status=models.STATUS_BORROWED, with_details=True
    )
    data = [lending.to_out(t, with_details=True) for t in transactions]
    return schemas.envelope(data, count=len(data))


@router.get("/history/{user_id}")
def history(
    user_id: int = Path(gt=0, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
    user: models.User = Depends(auth.get_current_user),
):
    if user.id != user_id and not user.is_admin:
        raise Forbidden("history_forbidden")

    transactions = lending.list_transactions(db, user_id=user_id, with_details=True)
    data = [lending.to_out(t, with_details=True) for t in transactions]
    return schemas.envelope(data, count=len(data))


@router.get("/admin/borrowed-books")
def borrowed_books(
    status_filter: Literal["borrowed", "returned"] | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    transactions = lending.list_transactions(db, status=status_filter, with_details=True)
    data = [lending.to_out(t, with_details=True) for t in transactions]
    return schemas.envelope(data, count=len(data))
