import logging

from sqlalchemy import delete
from sqlalchemy.orm import Session

import auth, models
from config import settings
from database import Base, build_engine, build_session_factory
from logging_config import setup_logging

logger = logging.getLogger(__name__)

USERS = [
    {"username": "admin", "password": "admin123", "role": models.ROLE_ADMIN},
    {"username": "member", "password": "member123", "role": models.ROLE_MEMBER},
]

BOOKS = [
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "quantity": 5,
        "category": "Fiction",
        "description": "The story of the mysteriously wealthy Jay Gatsby and his love for the beautiful Daisy Buchanan.",
    },
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "quantity": 3,
        "category": "Fiction",
        "description": "The story of a young girl growing up in the 1930s in the deep South.",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "quantity": 10,
        "category": "Science Fiction",
        "description": "A dystopian social science fiction novel and cautionary tale.",
    },
]


def seed(db: Session) -> None:
    """Replace all users and books with the demo data set."""
    db.execute(delete(models.User))
    db.execute(delete(models.Book))

    for user in USERS:
        db.add(
            models.User(
                username=user["username"],
                password=auth.hash_password(user["password"]),
                role=user["role"],
            )
        )
    for book in BOOKS:
        db.add(models.Book(**book))

    db.commit()
    logger.info("Seeded %d users and %d books", len(USERS), len(BOOKS))


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    engine = build_engine(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    session = build_session_factory(engine)()
    try:
        seed(session)
    finally:
        session.close()
        engine.dispose()
