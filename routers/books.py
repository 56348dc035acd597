import logging

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

import models, schemas, auth
from database import get_db
from errors import NotFound
from messages import translate_for
from redis_client import books_cache_key, cache_books, get_cached_books, invalidate_books_cache

router = APIRouter(prefix="/books", tags=["Books"])
logger = logging.getLogger(__name__)


def _get_book_or_404(db: Session, book_id: int) -> models.Book:
    book = db.get(models.Book, book_id)
    if not book:
        raise NotFound("book_not_found")
    return book


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# Get Books
@router.get("")
def get_books(
    request: Request,
    q: str | None = Query(default=None, max_length=255),
    category: str | None = Query(default=None, max_length=120),
    db: Session = Depends(get_db),
):
    redis_client = request.app.state.redis
    cache_key = books_cache_key(q, category)
    cached = get_cached_books(redis_client, cache_key)
    if cached is not None:
        return schemas.envelope(cached, count=len(cached))

    query = select(models.Book)
    if q:
        pattern = _like_pattern(q.strip())
        query = query.where(
            or_(
                models.Book.title.ilike(pattern, escape="\\"),
                models.Book.author.ilike(pattern, escape="\\"),
            )
        )
    if category:
        query = query.where(models.Book.category == category)
    query = query.order_by(models.Book.created_at.desc(), models.Book.id.desc())

    books = [schemas.BookOut.model_validate(book) for book in db.scalars(query).all()]
    payload = schemas.envelope(books, count=len(books))

    cache_books(redis_client, cache_key, payload["data"], request.app.state.settings.CACHE_TTL_SECONDS)
    return payload


@router.get("/{book_id}")
def get_book(book_id: int = Path(gt=0, le=schemas.MAX_ID), db: Session = Depends(get_db)):
    book = _get_book_or_404(db, book_id)
    return schemas.envelope(schemas.BookOut.model_validate(book))


# Add Book
@router.post("", status_code=status.HTTP_201_CREATED)
def add_book(
    request: Request,
    book: schemas.BookCreate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    new_book = models.Book(
        title=book.title,
        author=book.author,
        quantity=book.quantity,
        description=book.description,
        isbn=book.isbn,
        category=book.category or models.DEFAULT_CATEGORY,
    )

    db.add(new_book)
    db.commit()
    db.refresh(new_book)

    invalidate_books_cache(request.app.state.redis)
    logger.info("Admin %s added book %s (%s)", admin.id, new_book.id, new_book.title)
    return schemas.envelope(
        schemas.BookOut.model_validate(new_book),
        message=translate_for(request, "book_created"),
    )


@router.put("/{book_id}")
def update_book(
    request: Request,
    book: schemas.BookUpdate,
    book_id: int = Path(gt=0, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    db_book = _get_book_or_404(db, book_id)

    for field, value in book.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(db_book, field, value)

    db.commit()
    db.refresh(db_book)

    invalidate_books_cache(request.app.state.redis)
    logger.info("Admin %s updated book %s", admin.id, book_id)
    return schemas.envelope(
        schemas.BookOut.model_validate(db_book),
        message=translate_for(request, "book_updated"),
    )


@router.delete("/{book_id}")
def delete_book(
    request: Request,
    book_id: int = Path(gt=0, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    db_book = _get_book_or_404(db, book_id)

    db.delete(db_book)
    db.commit()

    invalidate_books_cache(request.app.state.redis)
    logger.info("Admin %s deleted book %s", admin.id, book_id)
    return schemas.envelope(message=translate_for(request, "book_deleted"))
