from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, UploadFile
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from portfolio.core.mail import Mailer, get_mailer
from portfolio.core.media import (
    AVATAR_FOLDER,
    RESUME_FOLDER,
    MediaObject,
    MediaStore,
    get_media_store,
)
from portfolio.core.security import (
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)
from portfolio.core.session import (
    CurrentUser,
    clear_session,
    issue_session,
    user_response,
)
from portfolio.models.requests import (
    ForgotPassword,
    FormPayload,
    LoginRequest,
    RegisterAccount,
    ResetPassword,
    Unwrapped,
    UpdatePassword,
    UpdateProfile,
)
from portfolio.models.requests.user import PASSWORD_MIN_LENGTH
from portfolio.models.schema import User
from portfolio.shared import Logger, load_config
from portfolio.shared.db import SessionDep
from portfolio.shared.http import server_error_handler

logger = Logger(__name__).get_logger()

router = APIRouter(prefix="/api/v1/user", tags=["user"])

config = load_config()

MediaDep = Annotated[MediaStore, Depends(get_media_store)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]

UPLOAD_FAILED = "Failed to upload files to media host"


def find_user_by_email(session: Session, email: str) -> User | None:
    return session.exec(select(User).where(User.email == email.strip().lower())).first()


async def discard_uploads(media: MediaStore, uploaded: list[MediaObject]):
    for item in uploaded:
        try:
            await media.destroy(item)
        except Exception as e:
            logger.warning("Could not remove media object %s: %s", item.public_id, e)


async def upload_all(
    media: MediaStore, pending: list[tuple[UploadFile, str]]
) -> list[MediaObject]:
    """Upload every ``(file, folder)`` pair, or none of them."""
    uploaded: list[MediaObject] = []
    try:
        with server_error_handler(stacklevel=2, detail=UPLOAD_FAILED):
            for file, folder in pending:
                uploaded.append(await media.upload(file, folder))
    except HTTPException:
        await discard_uploads(media, uploaded)
        raise
    return uploaded


@router.post("/register")
async def register(
    payload: Annotated[Unwrapped, Depends(FormPayload.unwrap(RegisterAccount))],
    session: SessionDep,
    media: MediaDep,
):
    avatar = payload.files.get("avatar")
    resume = payload.files.get("resume")
    if avatar is None or resume is None:
        raise HTTPException(status_code=400, detail="Avatar And Resume Are Required!")

    data: RegisterAccount = payload.data
    logger.debug("Registering %s", data.email)

    if find_user_by_email(session, data.email):
        raise HTTPException(status_code=400, detail="Duplicate email entered")

    uploaded = await upload_all(media, [(avatar, AVATAR_FOLDER), (resume, RESUME_FOLDER)])
    avatar_media, resume_media = uploaded

    new_user = User(
        **data.model_dump(exclude={"password"}),
        password=await run_in_threadpool(hash_password, data.password),
        avatar_public_id=avatar_media.public_id,
        avatar_url=avatar_media.url,
        resume_public_id=resume_media.public_id,
        resume_url=resume_media.url,
    )
    session.add(new_user)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        await discard_uploads(media, uploaded)
        raise HTTPException(status_code=400, detail="Duplicate email entered") from e
    session.refresh(new_user)

    logger.info("Registered user %s (%s)", new_user.id, new_user.email)
    return issue_session(new_user, "Registered!", 201)


@router.post("/login")
async def login(
    payload: Annotated[Unwrapped, Depends(FormPayload.unwrap(LoginRequest))],
    session: SessionDep,
):
    data: LoginRequest = payload.data
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Provide Email And Password!")

    user = find_user_by_email(session, data.email)
    if user is None:
        raise HTTPException(status_code=404, detail="Invalid Email Or Password!")

    if not await run_in_threadpool(verify_password, data.password, user.password):
        logger.info("Wrong password for user %s", user.id)
        raise HTTPException(status_code=401, detail="Invalid Email Or Password")

    return issue_session(user, "Login Successfully!", 200)


@router.get("/logout")
async def logout(user: CurrentUser):
    logger.info("User %s logged out", user.id)
    return clear_session("Logged Out!")


@router.get("/me")
async def get_user(user: CurrentUser):
    return user_response(user=user)


@router.put("/update/me")
async def update_profile(
    payload: Annotated[Unwrapped, Depends(FormPayload.unwrap(UpdateProfile))],
    user: CurrentUser,
    session: SessionDep,
    media: MediaDep,
):
    data: UpdateProfile = payload.data
    # Links may be cleared with null, required fields may not
    changes = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if value is not None or key.endswith("_url")
    }

    if changes.get("email") and changes["email"] != user.email:
        other = find_user_by_email(session, changes["email"])
        if other is not None and other.id != user.id:
            raise HTTPException(status_code=400, detail="Duplicate email entered")

    # Old objects are only destroyed once the new ones are committed
    slots = [
        (name, file, folder)
        for name, folder in (("avatar", AVATAR_FOLDER), ("resume", RESUME_FOLDER))
        if (file := payload.files.get(name))
    ]
    stored = await upload_all(media, [(file, folder) for _, file, folder in slots])

    replaced: list[MediaObject] = []
    for (name, _, _), new in zip(slots, stored):
        if previous_id := getattr(user, f"{name}_public_id"):
            replaced.append(MediaObject(previous_id, getattr(user, f"{name}_url") or ""))
        changes[f"{name}_public_id"] = new.public_id
        changes[f"{name}_url"] = new.url

    for key, value in changes.items():
        setattr(user, key, value)
    session.add(user)
    try:
        session.commit()
    except Exception:
        session.rollback()
        await discard_uploads(media, stored)
        raise
    session.refresh(user)

    await discard_uploads(media, replaced)
    logger.info("Updated profile of user %s: %s", user.id, sorted(changes))
    return user_response(message="Profile Updated!", user=user)


@router.put("/update/password")
async def update_password(
    payload: Annotated[Unwrapped, Depends(FormPayload.unwrap(UpdatePassword))],
    user: CurrentUser,
    session: SessionDep,
):
    data: UpdatePassword = payload.data
    if not data.current_password or not data.new_password or not data.confirm_new_password:
        raise HTTPException(status_code=400, detail="Please Fill All Fields.")

    if not await run_in_threadpool(verify_password, data.current_password, user.password):
        raise HTTPException(status_code=400, detail="Incorrect Current Password!")

    if data.new_password != data.confirm_new_password:
        raise HTTPException(
            status_code=400,
            detail="New Password And Confirm New Password Do Not Match!",
        )

    if len(data.new_password) < PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password Must Contain At Least {PASSWORD_MIN_LENGTH} Characters!",
        )

    user.password = await run_in_threadpool(hash_password, data.new_password)
    session.add(user)
    session.commit()

    logger.info("Password updated for user %s", user.id)
    return user_response(message="Password Updated!")


@router.get("/me/portfolio")
async def get_user_for_portfolio(session: SessionDep):
    owner_email = config.portfolio.owner_email
    if owner_email:
        user = find_user_by_email(session, owner_email)
    else:
        # Single-owner deployment: the first account is the portfolio owner
        user = session.exec(select(User).order_by(User.id)).first()

    if user is None:
        raise HTTPException(status_code=404, detail="User Not Found!")
    return user_response(user=user)


@router.post("/password/forgot")
async def forgot_password(
    payload: Annotated[Unwrapped, Depends(FormPayload.unwrap(ForgotPassword))],
    session: SessionDep,
    mailer: MailerDep,
):
    data: ForgotPassword = payload.data
    user = find_user_by_email(session, data.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User Not Found!")

    token, token_hash, expires_at = generate_reset_token()
    user.reset_password_token = token_hash
    user.reset_password_expire = expires_at
    session.add(user)
    session.commit()

    reset_url = f"{config.portfolio.dashboard_url.rstrip('/')}/password/reset/{token}"
    message = (
        f"Your Reset Password Token is:- \n\n {reset_url}  \n\n "
        "If You've not requested this email then, please ignore it."
    )

    try:
        with server_error_handler():
            await run_in_threadpool(
                mailer.send,
                user.email,
                "Personal Portfolio Dashboard Password Recovery",
                message,
            )
    except HTTPException:
        user.clear_reset_token()
        session.add(user)
        session.commit()
        raise

    logger.info("Password reset mail sent to user %s", user.id)
    return user_response(201, message=f"Email sent to {user.email} successfully")


@router.put("/password/reset/{token}")
async def reset_password(
    token: str,
    payload: Annotated[Unwrapped, Depends(FormPayload.unwrap(ResetPassword))],
    session: SessionDep,
):
    user = session.exec(
        select(User).where(
            User.reset_password_token == hash_reset_token(token),
            User.reset_password_expire > datetime.now(timezone.utc),
        )
    ).first()
    if user is None:
        raise HTTPException(
            status_code=400,
            detail="Reset password token is invalid or has been expired.",
        )

    data: ResetPassword = payload.data
    if data.password != data.confirm_password:
        raise HTTPException(
            status_code=400, detail="Password & Confirm Password do not match"
        )

    user.password = await run_in_threadpool(hash_password, data.password)
    user.clear_reset_token()
    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("Password reset completed for user %s", user.id)
    return issue_session(user, "Reset Password Successfully!", 200)
