from datetime import timedelta
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlmodel import Session

from portfolio.core.security import create_session_token, decode_session_token
from portfolio.models.requests import UserResponse
from portfolio.models.schema import User, UserPublic
from portfolio.shared import Logger, load_config
from portfolio.shared.db import get_session

logger = Logger(__name__).get_logger()

config = load_config()

COOKIE_NAME = "token"


def user_response(status_code: int = 200, **content) -> JSONResponse:
    user = content.get("user")
    if isinstance(user, User):
        content["user"] = UserPublic.from_user(user)
    body = UserResponse(**content)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def issue_session(user: User, message: str, status_code: int) -> JSONResponse:
    """Answer with the user and a fresh session token, also set as a cookie."""
    token = create_session_token(user.id)
    response = user_response(status_code, message=message, user=user, token=token)
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=int(timedelta(days=config.auth.cookie_expire_days).total_seconds()),
        httponly=True,
        secure=config.auth.cookie_secure,
        samesite="none" if config.auth.cookie_secure else "lax",
    )
    logger.info("Issued session for user %s (%s)", user.id, message)
    return response


def clear_session(message: str) -> JSONResponse:
    response = user_response(message=message)
    response.delete_cookie(
        COOKIE_NAME,
        httponly=True,
        secure=config.auth.cookie_secure,
        samesite="none" if config.auth.cookie_secure else "lax",
    )
    return response


def get_current_user(
    session: Annotated[Session, Depends(get_session)],
    token: Annotated[str | None, Cookie(alias=COOKIE_NAME)] = None,
) -> User:
    if not token:
        raise HTTPException(status_code=400, detail="User Not Authenticated!")

    user_id = decode_session_token(token)
    user = session.get(User, user_id)
    if user is None:
        logger.warning("Session token refers to missing user %s", user_id)
        raise HTTPException(status_code=404, detail="User Not Found!")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
