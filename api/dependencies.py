"""
api/dependencies.py -- FastAPI Depends() helpers that expose app.state objects.

The lifespan in api/main.py builds one CredentialStore and one AuthWorkflow
per process and parks them on app.state. Routes pull them through these
helpers so tests can swap the stores by patching the lifespan.
"""

from __future__ import annotations

from fastapi import Request

from accounts.store import CredentialStore
from accounts.workflow import AuthWorkflow


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def get_workflow(request: Request) -> AuthWorkflow:
    return request.app.state.workflow
