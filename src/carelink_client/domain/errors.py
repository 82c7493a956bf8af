from __future__ import annotations


class CareLinkError(Exception):
    """Base class for every error raised by the client."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidCredentials(CareLinkError):
    """The backend re-rendered its login page: username or password rejected."""


class AuthExpired(CareLinkError):
    """HTTP 401. The token or session cookie is no longer accepted."""


class AuthRejected(CareLinkError):
    """HTTP 403. The request envelope was refused."""


class TransientNetwork(CareLinkError):
    """Any other request failure (network error, 5xx, unexpected page)."""


class RetriesExhausted(CareLinkError):
    def __init__(self, last_error: BaseException) -> None:
        super().__init__(f"Failed to download CareLink data: {last_error}")
        self.last_error = last_error
