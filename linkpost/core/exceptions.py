"""Domain errors and HTTP exception factories for the relay endpoints."""

from typing import Optional

from fastapi import HTTPException

NOT_CONNECTED = "NOT_CONNECTED"
SCOPE_REQUIRED = "SCOPE_REQUIRED"


class StorageError(Exception):
    """The persistence medium is unavailable, full, or refused a write."""


class SessionConfigError(RuntimeError):
    """Session secret missing; cookies cannot be issued."""


class LinkedInAPIError(Exception):
    """LinkedIn returned a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LinkedInScopeError(LinkedInAPIError):
    """The connected app lacks an OAuth scope needed for the call."""

    def __init__(self, scope: str, message: Optional[str] = None):
        super().__init__(
            message
            or f"Your LinkedIn app does not have permission for this action. The {scope} scope is required.",
            status_code=403,
        )
        self.scope = scope


class LLMProviderError(Exception):
    """A generative-text provider call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def not_connected_exception(message: Optional[str] = None) -> HTTPException:
    """401 for relay calls made without a valid LinkedIn session."""
    return HTTPException(
        status_code=401,
        detail={
            "code": NOT_CONNECTED,
            "error": message or "Not authenticated with LinkedIn. Please connect first.",
        },
    )


def scope_required_exception(exc: LinkedInScopeError) -> HTTPException:
    """403 carrying the missing scope so the UI can show remediation steps."""
    return HTTPException(
        status_code=403,
        detail={
            "code": SCOPE_REQUIRED,
            "error": exc.message,
            "scopeRequired": exc.scope,
        },
    )


def storage_unavailable_exception() -> HTTPException:
    """503 when the post store could not read or write its medium."""
    return HTTPException(status_code=503, detail="Post storage unavailable")
