"""Authentication schemas."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class Role(str, Enum):
    """Role assigned to an account by the clinic API."""

    PATIENT = "user"
    DOCTOR = "doc"


class Session(BaseModel):
    """Authenticated caller, passed explicitly to anything that checks roles."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    role: Role


class Credentials(BaseModel):
    """Email and password sent for login or registration."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class ClinicIdentity(BaseModel):
    """Identity returned by the clinic API login endpoint."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = Field(validation_alias=AliasChoices("ID", "id"))
    email: str
    role: Role
    account_status: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Estado", "account_status"),
    )
    account_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("Tipo", "account_type"),
    )


class Token(BaseModel):
    """JWT token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefresh(BaseModel):
    """Token refresh request schema."""

    refresh_token: str


class UserResponse(BaseModel):
    """User response schema."""

    id: str
    email: str
    role: Role
    account_status: str | None = None
    account_type: str | None = None


class LoginResponse(BaseModel):
    """Login response with tokens and user info."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
