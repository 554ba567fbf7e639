"""
API request and response models for the account service REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are kept
separate from the dataclasses in accounts/models.py, which own the domain
shape. Route handlers map between the two. No response model carries the
password hash.
"""

from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from accounts.models import NewUser, ProfileUpdate, User
from accounts.passwords import MAX_PASSWORD_BYTES, check_password

# max_length counts characters; check_password() enforces bcrypt's byte limit,
# which multibyte characters reach sooner.
_NewPassword = Annotated[
    str,
    Field(min_length=8, max_length=MAX_PASSWORD_BYTES),
    AfterValidator(check_password),
]

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)


class AdminCheckRequest(BaseModel):
    user_id: int


class UserCreate(BaseModel):
    """Registration body for POST /api/v1/users."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    first_name: str = Field(min_length=1, max_length=100)
    last_name_1: str = Field(min_length=1, max_length=100)
    last_name_2: Optional[str] = Field(default=None, max_length=100)
    password: _NewPassword

    def to_domain(self) -> NewUser:
        return NewUser(
            username=self.username,
            email=str(self.email),
            first_name=self.first_name,
            last_name_1=self.last_name_1,
            last_name_2=self.last_name_2,
            password=self.password,
        )


class ProfilePatch(BaseModel):
    """Partial profile edit. Omitted or null fields keep their stored value."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name_1: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name_2: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None

    def to_domain(self) -> ProfileUpdate:
        return ProfileUpdate(
            first_name=self.first_name,
            last_name_1=self.last_name_1,
            last_name_2=self.last_name_2,
            email=str(self.email) if self.email is not None else None,
        )


class PasswordChange(BaseModel):
    password: _NewPassword


class VerifyRequest(BaseModel):
    usernames: list[str] = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    user_id: int


class AdminCheckResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    is_admin: bool
    message: str


class UserResponse(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name_1: str
    last_name_2: Optional[str] = None
    verified: bool

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name_1=user.last_name_1,
            last_name_2=user.last_name_2,
            verified=user.verified,
        )


class VerifyResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    requested: int
    verified: int


class DeleteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    deleted: int


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
