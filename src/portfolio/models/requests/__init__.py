from .form_payload import FormPayload, Unwrapped
from .user import (
    ForgotPassword,
    LoginRequest,
    RegisterAccount,
    ResetPassword,
    UpdatePassword,
    UpdateProfile,
    UserResponse,
)

__all__ = [
    "ForgotPassword",
    "FormPayload",
    "LoginRequest",
    "RegisterAccount",
    "ResetPassword",
    "Unwrapped",
    "UpdatePassword",
    "UpdateProfile",
    "UserResponse",
]
