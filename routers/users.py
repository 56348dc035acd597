import logging

from fastapi import APIRouter, Depends, Path, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models, schemas, auth
from config import Settings
from database import get_db
from errors import Conflict, Forbidden, NotFound, Unauthorized
from messages import translate_for

router = APIRouter(tags=["Users"])
logger = logging.getLogger(__name__)


def _auth_result(user: models.User, settings: Settings) -> schemas.AuthResult:
    return schemas.AuthResult(
        id=user.id,
        username=user.username,
        role=user.role,
        token=auth.create_access_token(user.id, settings),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(auth.get_settings),
):
    if user.role == models.ROLE_ADMIN and not settings.ALLOW_ADMIN_REGISTRATION:
        raise Forbidden("admin_registration_disabled")

    existing_user = db.scalars(select(models.User).where(models.User.username == user.username)).first()
    if existing_user:
        raise Conflict("username_taken")

    new_user = models.User(
        username=user.username,
        password=auth.hash_password(user.password),
        role=user.role,
    )
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("username_taken") from exc
    db.refresh(new_user)

    logger.info("Registered %s %s (id=%s)", new_user.role, new_user.username, new_user.id)
    return schemas.envelope(
        _auth_result(new_user, settings),
        message=translate_for(request, "register_success"),
    )


@router.post("/login")
def login(
    request: Request,
    user: schemas.UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(auth.get_settings),
):
    db_user = db.scalars(select(models.User).where(models.User.username == user.username)).first()

    if not db_user or not auth.verify_password(user.password, db_user.password):
        raise Unauthorized("invalid_credentials")

    return schemas.envelope(
        _auth_result(db_user, settings),
        message=translate_for(request, "login_success"),
    )


@router.get("/users")
def list_members(
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    members = db.scalars(
        select(models.User)
        .where(models.User.role == models.ROLE_MEMBER)
        .order_by(models.User.created_at.desc(), models.User.id.desc())
    ).all()
    data = [schemas.UserPublic.model_validate(member) for member in members]
    return schemas.envelope(data, count=len(data))


@router.delete("/users/{user_id}")
def delete_user(
    request: Request,
    user_id: int = Path(gt=0, le=schemas.MAX_ID),
    db: Session = Depends(get_db),
    admin: models.User = Depends(auth.require_admin),
):
    db_user = db.get(models.User, user_id)
    if not db_user:
        raise NotFound("user_not_found")

    db.delete(db_user)
    db.commit()

    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return schemas.envelope(message=translate_for(request, "member_deleted"))
