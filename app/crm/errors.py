"""
Customer domain exceptions.

Raised by the service layer at the point a rule is violated. The Flask error
handler registered in `create_app` turns them into JSON responses using
`status_code`; nothing here is retried.
"""

from __future__ import annotations


class CustomerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CustomerNotFound(CustomerError):
    status_code = 404


class NoImage(CustomerError):
    """Customer exists but has no profile image set."""

    status_code = 404


class DuplicateIdentity(CustomerError):
    status_code = 409


class NoChanges(CustomerError):
    """Update patch produced zero effective field changes."""

    status_code = 400


class RequestValidationError(CustomerError):
    status_code = 400

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class UploadFailed(CustomerError):
    """Blob write/read failure. The cause is chained via `raise ... from`."""

    status_code = 500
