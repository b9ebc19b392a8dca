# Filename: thecrew/auth.py
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from fastapi import Depends, Request, Response
from typing import Optional
from sqlmodel import Session, select

from .config import settings
from .db import get_session
from .exceptions import NotAuthenticated
from .models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = settings.jwt_algorithm
SECRET_KEY = settings.secret_key
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
SESSION_COOKIE = "access_token"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta if expires_delta else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(subject), "exp": int(expire.timestamp()), "iat": int(now.timestamp()), "typ": "session"}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def set_session_cookie(response: Response, user: User) -> None:
    token = create_access_token(user.id)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE, path="/")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    statement = select(User).where(User.email == normalize_email(email))
    return session.exec(statement).first()


def _get_token_from_header_or_cookie(request: Request) -> Optional[str]:
    """
    If Authorization header present: return token (raw token or "Bearer ...")
    Else if the session cookie is present: return that
    """
    auth_header = request.headers.get("authorization")
    if auth_header:
        return auth_header
    return request.cookies.get(SESSION_COOKIE)


def get_current_user(request: Request, session: Session = Depends(get_session)) -> User:
    token_raw = _get_token_from_header_or_cookie(request)
    if not token_raw:
        raise NotAuthenticated()

    # token may be "Bearer <token>" or just "<token>"
    if token_raw.lower().startswith("bearer "):
        token = token_raw.split(" ", 1)[1]
    else:
        token = token_raw

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise NotAuthenticated()
    user_id: Optional[str] = payload.get("sub")
    if not user_id or payload.get("typ") != "session":
        raise NotAuthenticated()

    user = session.get(User, user_id)
    if user is None:
        raise NotAuthenticated()
    return user
