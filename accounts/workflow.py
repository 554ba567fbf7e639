"""
accounts/workflow.py -- Login and admin-role decisions.

Pure decision logic over CredentialStore. Nothing here writes to the store.

Login order is fixed: lookup, then password, then the verified flag. An
unverified account therefore only learns it is unverified after presenting
the correct password. The distinct NOT_VERIFIED vs INVALID_PASSWORD answers
still reveal, to someone holding the right password, that the account exists
and is pending; that residual signal is accepted.

Unknown usernames run a bcrypt comparison against DUMMY_HASH so that the
USER_NOT_FOUND path costs the same as a wrong password.

StorageError from the store is never caught here. A failed admin check must
surface as an error, not as IS_REGULAR_USER.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from accounts.models import AdminOutcome, LoginOutcome, LoginStatus
from accounts.passwords import DUMMY_HASH, verify_password

if TYPE_CHECKING:
    from accounts.store import CredentialStore

logger = logging.getLogger("accounts.auth")


class AuthWorkflow:
    """Orchestrates login and admin-role checks against a CredentialStore."""

    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    def login(self, username: str, password: str) -> LoginOutcome:
        user = self.store.find_by_username(username)
        if user is None:
            verify_password(password, DUMMY_HASH)
            logger.info("Login rejected for %r: unknown user", username)
            return LoginOutcome(LoginStatus.USER_NOT_FOUND)

        if not verify_password(password, user.password_hash):
            logger.info("Login rejected for %r: invalid password", username)
            return LoginOutcome(LoginStatus.INVALID_PASSWORD)

        if not user.verified:
            logger.info("Login rejected for %r: account not verified", username)
            return LoginOutcome(LoginStatus.NOT_VERIFIED)

        logger.info("User %s logged in", username)
        return LoginOutcome(LoginStatus.SUCCESS, user_id=user.id)

    def check_admin_role(self, user_id: int) -> AdminOutcome:
        if self.store.is_admin(user_id):
            return AdminOutcome.IS_ADMIN
        return AdminOutcome.IS_REGULAR_USER
