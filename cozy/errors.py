"""Exceptions shared by the stores, services and HTTP layer."""


class CozyError(Exception):
    """Base exception for all Cozy Connections errors."""

    def __init__(self, message: str, status: int = 400) -> None:
        self.message = message
        self.status = status
        super().__init__(message)


class AuthError(CozyError):
    """Missing, invalid or expired credentials."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message, status=401)


class NotFoundError(CozyError):
    """Record not found."""

    def __init__(self, resource: str, record_id: str) -> None:
        super().__init__(f"{resource} {record_id} not found", status=404)


class ValidationError(CozyError):
    """Request data failed validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status=400)


class ConflictError(CozyError):
    """Record already exists."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status=409)


class UpstreamError(CozyError):
    """The language model API failed or could not be reached."""

    def __init__(self, message: str = "AI service unavailable") -> None:
        super().__init__(message, status=502)


class ForbiddenError(CozyError):
    """Signed in, but not allowed here yet; *redirect* names where to go instead."""

    def __init__(self, message: str, redirect: str | None = None) -> None:
        super().__init__(message, status=403)
        self.redirect = redirect
