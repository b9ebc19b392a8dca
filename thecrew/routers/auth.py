# Filename: thecrew/routers/auth.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from ..auth import (
    clear_session_cookie,
    get_current_user,
    get_password_hash,
    get_user_by_email,
    set_session_cookie,
    verify_password,
)
from ..config import settings
from ..db import get_session
from ..exceptions import InvalidCredentials, ValidationFailed
from ..logging_config import get_logger
from ..models import User
from ..schemas import Credentials, MessageOut, PasswordChange, ProfileUpdate, UserOut
from ..services import check_password, create_user

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(data: Credentials, response: Response, session: Session = Depends(get_session)):
    check_password(data.password)
    user = create_user(session, data.email, data.password)
    session.commit()
    session.refresh(user)
    set_session_cookie(response, user)
    logger.info("user_registered", user_id=user.id)
    return user


@router.post("/login", response_model=UserOut)
def login(data: Credentials, response: Response, session: Session = Depends(get_session)):
    user = get_user_by_email(session, data.email)
    # unknown email and wrong password answer identically
    if not user or not verify_password(data.password, user.hashed_password):
        raise InvalidCredentials()
    set_session_cookie(response, user)
    return user


@router.post("/logout", response_model=MessageOut)
def logout(response: Response):
    clear_session_cookie(response)
    return MessageOut(message="Logged out")


@router.get("/user", response_model=UserOut)
def current_user(user: User = Depends(get_current_user)):
    return user


@router.patch("/user", response_model=UserOut)
def update_profile(data: ProfileUpdate, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    user.first_name = data.first_name
    user.last_name = data.last_name
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@router.post("/change-password", response_model=MessageOut)
def change_password(data: PasswordChange, user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    check_password(data.new_password, f"New password must be at least {settings.min_password_length} characters")
    if not verify_password(data.current_password, user.hashed_password):
        raise ValidationFailed("Current password is incorrect")
    user.hashed_password = get_password_hash(data.new_password)
    session.add(user)
    session.commit()
    logger.info("password_changed", user_id=user.id)
    return MessageOut(message="Password updated successfully")
