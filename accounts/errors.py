"""
accounts/errors.py -- Exception hierarchy for the account service.

Only genuine failures are exceptions. Expected control paths (unknown user,
wrong password, unverified account) are reported as outcomes by
accounts/workflow.py and as None / 0 results by accounts/store.py.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for every error raised by the accounts package."""


class StorageError(AccountError):
    """The backing store was unreachable or returned an unexpected failure.

    Always surfaced to the caller, never retried here. The originating
    SQLAlchemy exception is chained as __cause__.
    """


class UniquenessViolation(StorageError):
    """A write collided with an existing unique value (username or email)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
