"""
api/routes/v1/users.py -- Login, admin check, and account management endpoints.

Routes:
  POST   /api/v1/users/login                  -- password login
  POST   /api/v1/users/check-admin            -- admin-role classification
  POST   /api/v1/users                        -- register an account (unverified)
  GET    /api/v1/users/{id}                   -- fetch one account
  PATCH  /api/v1/users/{id}                   -- edit profile (resets verified)
  PUT    /api/v1/users/{id}/password          -- replace password
  POST   /api/v1/users/verify                 -- batch-verify usernames
  DELETE /api/v1/users/{id}                   -- delete by id
  DELETE /api/v1/users/by-username/{username} -- delete by username

Outcome mapping for login (each outcome has its own status and code):
  SUCCESS          -> 200
  USER_NOT_FOUND   -> 404 user_not_found
  INVALID_PASSWORD -> 401 invalid_password
  NOT_VERIFIED     -> 403 not_verified

StorageError is not handled here; the exception handlers in api/main.py turn
it into 503 (or 409 for UniquenessViolation).

Routes are sync `def` so FastAPI runs the blocking store calls in its
threadpool instead of on the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from accounts.models import AdminOutcome, LoginStatus
from accounts.store import CredentialStore
from accounts.workflow import AuthWorkflow
from api.dependencies import get_store, get_workflow
from api.models import (
    AdminCheckRequest,
    AdminCheckResponse,
    DeleteResponse,
    LoginRequest,
    LoginResponse,
    PasswordChange,
    ProfilePatch,
    UserCreate,
    UserResponse,
    VerifyRequest,
    VerifyResponse,
)

router = APIRouter()

_LOGIN_FAILURES: dict[LoginStatus, tuple[int, str]] = {
    LoginStatus.USER_NOT_FOUND: (404, "User not found."),
    LoginStatus.INVALID_PASSWORD: (401, "Incorrect password."),
    LoginStatus.NOT_VERIFIED: (403, "Account not verified yet. An administrator will review it shortly."),
}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@router.post("/users/login", response_model=LoginResponse)
def login(body: LoginRequest, workflow: AuthWorkflow = Depends(get_workflow)) -> JSONResponse:
    """Check username, password and verified flag, in that order."""
    outcome = workflow.login(body.username, body.password)
    if not outcome.ok:
        status_code, message = _LOGIN_FAILURES[outcome.status]
        resp = JSONResponse(
            status_code=status_code,
            content={"error": {"code": outcome.status.value, "message": message}},
        )
    else:
        resp = JSONResponse(
            status_code=200,
            content=LoginResponse(message="Login successful.", user_id=outcome.user_id).model_dump(),
        )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/users/check-admin", response_model=AdminCheckResponse)
def check_admin(body: AdminCheckRequest, workflow: AuthWorkflow = Depends(get_workflow)) -> AdminCheckResponse:
    """Classify the user as admin or regular. A store failure is a 503, never "regular"."""
    outcome = workflow.check_admin_role(body.user_id)
    is_admin = outcome is AdminOutcome.IS_ADMIN
    return AdminCheckResponse(
        user_id=body.user_id,
        is_admin=is_admin,
        message="Entering settings as administrator." if is_admin else "Entering user settings.",
    )


# ---------------------------------------------------------------------------
# Account management
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserResponse, status_code=201)
def register(body: UserCreate, store: CredentialStore = Depends(get_store)) -> UserResponse:
    """Create an unverified account.

    The explicit lookups give friendly 409s; the unique constraints still
    catch a concurrent registration and surface it as UniquenessViolation.
    """
    if store.find_by_username(body.username) is not None:
        raise HTTPException(
            status_code=409,
            detail={"code": "username_taken", "message": "That username is already registered."},
        )
    if store.find_by_email(str(body.email)) is not None:
        raise HTTPException(
            status_code=409,
            detail={"code": "email_taken", "message": "That email is already registered."},
        )
    store.create(body.to_domain())
    return UserResponse.from_user(_require_user(store.find_by_username(body.username)))


@router.post("/users/verify", response_model=VerifyResponse)
def verify_users(body: VerifyRequest, store: CredentialStore = Depends(get_store)) -> VerifyResponse:
    """Batch-verify accounts. Unknown usernames are ignored."""
    requested = set(body.usernames)
    return VerifyResponse(requested=len(requested), verified=store.bulk_verify(requested))


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, store: CredentialStore = Depends(get_store)) -> UserResponse:
    return UserResponse.from_user(_require_user(store.find_by_id(user_id)))


@router.patch("/users/{user_id}", response_model=UserResponse)
def update_profile(
    user_id: int,
    body: ProfilePatch,
    store: CredentialStore = Depends(get_store),
) -> UserResponse:
    """Edit profile fields. The account drops back to unverified."""
    if store.update_profile(user_id, body.to_domain()) == 0:
        _require_user(None)
    return UserResponse.from_user(_require_user(store.find_by_id(user_id)))


@router.put("/users/{user_id}/password", status_code=204)
def change_password(
    user_id: int,
    body: PasswordChange,
    store: CredentialStore = Depends(get_store),
) -> Response:
    _require_user(store.find_by_id(user_id))
    store.update_password(user_id, body.password)
    return Response(status_code=204)


@router.delete("/users/by-username/{username}", response_model=DeleteResponse)
def delete_by_username(username: str, store: CredentialStore = Depends(get_store)) -> DeleteResponse:
    """Deleting an unknown username reports deleted=0, not an error."""
    return DeleteResponse(deleted=store.delete_by_username(username))


@router.delete("/users/{user_id}", response_model=DeleteResponse)
def delete_by_id(user_id: int, store: CredentialStore = Depends(get_store)) -> DeleteResponse:
    return DeleteResponse(deleted=store.delete_by_id(user_id))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_user(user):
    if user is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "User not found."},
        )
    return user
