"""
accounts/models.py -- Domain dataclasses and workflow outcomes.

Pattern: Data class (pure data container, zero logic). The store maps rows to
these; the workflow returns the outcome types; the API layer maps both to its
own Pydantic transport models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass
class User:
    """One account row.

    password_hash is the bcrypt hash, never the plaintext. verified is False
    until an administrator batch-verifies the account, and drops back to False
    whenever the profile (name or email) is edited.
    """

    username: str
    email: str
    first_name: str
    last_name_1: str
    password_hash: str
    id: int | None = None
    last_name_2: str | None = None
    verified: bool = False

    def __repr__(self) -> str:
        # Keep the hash out of logs and tracebacks.
        return f"User(id={self.id!r}, username={self.username!r}, verified={self.verified!r})"


@dataclass
class NewUser:
    """Registration fields as supplied by the caller (plaintext password)."""

    username: str
    email: str
    first_name: str
    last_name_1: str
    password: str
    last_name_2: str | None = None

    def __repr__(self) -> str:
        return f"NewUser(username={self.username!r}, email={self.email!r})"


@dataclass
class ProfileUpdate:
    """Partial profile edit. None leaves the stored value unchanged."""

    first_name: str | None = None
    last_name_1: str | None = None
    last_name_2: str | None = None
    email: str | None = None

    def changes(self) -> dict[str, str]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


# ---------------------------------------------------------------------------
# Workflow outcomes
# ---------------------------------------------------------------------------


class LoginStatus(str, Enum):
    SUCCESS = "success"
    USER_NOT_FOUND = "user_not_found"
    INVALID_PASSWORD = "invalid_password"
    NOT_VERIFIED = "not_verified"


@dataclass(frozen=True)
class LoginOutcome:
    """Result of AuthWorkflow.login(). user_id is set only on SUCCESS."""

    status: LoginStatus
    user_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is LoginStatus.SUCCESS


class AdminOutcome(str, Enum):
    IS_ADMIN = "is_admin"
    IS_REGULAR_USER = "is_regular_user"
