"""
Error types raised by the restaurant services.

Services raise these; the API layer in main.py turns them into HTTP responses.
"""


class PosError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PosError):
    status_code = 404


class ValidationError(PosError):
    status_code = 400


class BusinessRuleError(PosError):
    status_code = 409


class StoreError(PosError):
    """The database is unavailable or a write/read failed."""

    status_code = 503


class PermissionDeniedError(PosError):
    """The signed-in staff role may not use this operation."""

    status_code = 403
