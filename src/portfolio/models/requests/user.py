from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator

from portfolio.models.schema import UserPublic

PASSWORD_MIN_LENGTH = 8


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class LinkFields(BaseModel):
    portfolio_url: str | None = Field(
        default=None, validation_alias=_alias("portfolio_url", "portfolioURL")
    )
    github_url: str | None = Field(
        default=None, validation_alias=_alias("github_url", "githubURL")
    )
    instagram_url: str | None = Field(
        default=None, validation_alias=_alias("instagram_url", "instagramURL")
    )
    twitter_url: str | None = Field(
        default=None, validation_alias=_alias("twitter_url", "twitterURL")
    )
    facebook_url: str | None = Field(
        default=None, validation_alias=_alias("facebook_url", "facebookURL")
    )
    linkedin_url: str | None = Field(
        default=None, validation_alias=_alias("linkedin_url", "linkedInURL")
    )


class RegisterAccount(LinkFields):
    full_name: str = Field(..., min_length=1, validation_alias=_alias("full_name", "fullName"))
    email: EmailStr
    phone: str = Field(..., min_length=1)
    about_me: str = Field(..., min_length=1, validation_alias=_alias("about_me", "aboutMe"))
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class UpdateProfile(LinkFields):
    full_name: str | None = Field(
        default=None, min_length=1, validation_alias=_alias("full_name", "fullName")
    )
    email: EmailStr | None = None
    phone: str | None = None
    about_me: str | None = Field(
        default=None, validation_alias=_alias("about_me", "aboutMe")
    )

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else value


class UpdatePassword(BaseModel):
    current_password: str | None = Field(
        default=None, validation_alias=_alias("current_password", "currentPassword")
    )
    new_password: str | None = Field(
        default=None, validation_alias=_alias("new_password", "newPassword")
    )
    confirm_new_password: str | None = Field(
        default=None,
        validation_alias=_alias("confirm_new_password", "confirmNewPassword"),
    )


class ForgotPassword(BaseModel):
    email: str


class ResetPassword(BaseModel):
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    confirm_password: str = Field(
        ..., validation_alias=_alias("confirm_password", "confirmPassword")
    )


class UserResponse(BaseModel):
    success: bool = True
    message: str | None = None
    user: UserPublic | None = None
    token: str | None = None
