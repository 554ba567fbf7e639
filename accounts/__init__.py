"""accounts/ -- Credential storage and the login / admin-role workflow.

Layer rule: accounts/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/. api/ and main.py import from accounts/, not the
other way around.
"""
