"""Service helpers for account registration and credential checks."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from todo_api.core.exceptions import ConflictError
from todo_api.core.security import hash_password, verify_password
from todo_api.models.user import User
from todo_api.schemas.user import UserCreate

logger = logging.getLogger(__name__)

# Verified against when the email is unknown so both failure paths cost a hash check.
_DUMMY_PASSWORD_HASH = hash_password("not-a-real-password")


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_user(db: Session, data: UserCreate) -> User:
    if find_user_by_email(db, data.email):
        raise ConflictError("email_exists")
    user = User(
        name=data.name,
        email=data.email.lower(),
        password_hash=hash_password(data.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("email_exists")
    db.refresh(user)
    logger.info("User created: %s", user.email)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = find_user_by_email(db, email)
    if not user:
        verify_password(password, _DUMMY_PASSWORD_HASH)
        logger.warning("Login failed: user not found (%s)", email)
        return None
    if not verify_password(password, user.password_hash):
        logger.warning("Login failed: invalid password (%s)", email)
        return None
    logger.info("User authenticated: %s", user.email)
    return user
