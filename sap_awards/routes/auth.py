import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from .. import config
from ..auth import SESSION_USER_KEY, authenticate_user, get_current_user
from ..database import get_db
from ..errors import AuthenticationError
from ..models import User
from ..rate_limiter import create_rate_limiter
from ..shared.validators import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

login_limiter = create_rate_limiter(config.LOGIN_RATE_LIMIT, config.LOGIN_RATE_WINDOW, key_prefix="login")


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_email(v or "")


def user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "lastLoginAt": user.last_login_at,
    }


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    _: None = Depends(login_limiter),
    db: Session = Depends(get_db),
):
    user = authenticate_user(db, data.email, data.password)
    if not user:
        logger.warning(f"🔐 Failed login for {data.email}")
        raise AuthenticationError("Invalid email or password")

    user.last_login_at = datetime.utcnow()
    db.commit()

    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    logger.info(f"🔓 User {user.id} logged in")
    return {"status": "success", "data": {"user": user_payload(user)}}


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"status": "success", "message": "Logged out"}


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return {"status": "success", "data": {"user": user_payload(current_user)}}
