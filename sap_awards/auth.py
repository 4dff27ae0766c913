"""Session-based admin authentication"""

import logging
from typing import Optional

from fastapi import Depends, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .database import get_db
from .errors import AuthenticationError, PermissionDeniedError
from .models import User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.error(f"Password verification error: {e}")
        return False


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if not user or not user.is_active or not verify_password(password, user.password_hash):
        return None
    return user


async def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """Resolve the logged-in user from the signed session cookie"""
    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        raise AuthenticationError("Authentication required")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        logger.warning(f"⚠️ Session references missing or inactive user {user_id}")
        request.session.clear()
        raise AuthenticationError("Authentication required")
    return user


async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        logger.warning(f"🚫 User {user.id} attempted an admin action")
        raise PermissionDeniedError("Admin access required")
    return user
