"""Error taxonomy shared by the portal's collaborators and services.

Every error carries a plain-language ``message`` that is safe to show to the
end user; the technical cause is kept on ``__cause__`` for the logs.
"""
from __future__ import annotations


class PortalError(Exception):
    """Base class for errors surfaced to the portal user."""

    default_message = "Something went wrong. Please try again."
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthError(PortalError):
    """Bad credentials, a role mismatch, or an admin-only operation."""

    default_message = "Invalid credentials."
    status_code = 401


class StoreError(PortalError):
    """Network or validation failure on a catalog store call."""

    default_message = "The training catalog could not be reached."
    status_code = 502


class ValidationError(PortalError):
    """Required form fields are missing or inconsistent."""

    default_message = "Please fill in all required fields."
    status_code = 422


class AccessDeniedError(AuthError):
    """The signed-in account may not use an admin-only operation."""

    default_message = "This area is restricted to administrators."
    status_code = 403
