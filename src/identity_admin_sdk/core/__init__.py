"""Core components for Identity Admin SDK.

Token signing, token verification and HTTP plumbing shared by the blocking
and task-returning clients.
"""

from __future__ import annotations

from .errors import ErrorFactory
from .http_executor import HTTPExecutor
from .token_factory import CustomTokenFactory
from .token_verifier import IdTokenVerifier

__all__ = [
    "ErrorFactory",
    "HTTPExecutor",
    "CustomTokenFactory",
    "IdTokenVerifier",
]
