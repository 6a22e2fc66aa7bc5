from datetime import datetime, timezone

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    full_name: str = Field(..., description="Name shown on the portfolio")
    email: str = Field(..., unique=True, index=True, description="Unique login e-mail")
    phone: str = Field(..., description="Contact phone number")
    about_me: str = Field(..., description="Short biography")
    password: str = Field(..., description="scrypt hash of the password")

    # Profile links
    portfolio_url: str | None = Field(default=None)
    github_url: str | None = Field(default=None)
    instagram_url: str | None = Field(default=None)
    twitter_url: str | None = Field(default=None)
    facebook_url: str | None = Field(default=None)
    linkedin_url: str | None = Field(default=None)

    # Binaries held by the media host
    avatar_public_id: str = Field(..., description="Media host id of the avatar")
    avatar_url: str = Field(..., description="Public URL of the avatar")
    resume_public_id: str | None = Field(default=None)
    resume_url: str | None = Field(default=None)

    # Password recovery
    reset_password_token: str | None = Field(
        default=None, index=True, description="SHA-256 hex digest of the reset token"
    )
    reset_password_expire: datetime | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)

    def clear_reset_token(self):
        self.reset_password_token = None
        self.reset_password_expire = None


class MediaRef(BaseModel):
    public_id: str | None = None
    url: str | None = None


class UserPublic(BaseModel):
    """User as returned to clients. Secrets never leave the server."""

    id: int
    full_name: str
    email: str
    phone: str
    about_me: str
    portfolio_url: str | None = None
    github_url: str | None = None
    instagram_url: str | None = None
    twitter_url: str | None = None
    facebook_url: str | None = None
    linkedin_url: str | None = None
    avatar: MediaRef
    resume: MediaRef
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            phone=user.phone,
            about_me=user.about_me,
            portfolio_url=user.portfolio_url,
            github_url=user.github_url,
            instagram_url=user.instagram_url,
            twitter_url=user.twitter_url,
            facebook_url=user.facebook_url,
            linkedin_url=user.linkedin_url,
            avatar=MediaRef(public_id=user.avatar_public_id, url=user.avatar_url),
            resume=MediaRef(public_id=user.resume_public_id, url=user.resume_url),
            created_at=user.created_at,
        )
