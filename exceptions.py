# exceptions.py
# Domain errors raised by the services. Each carries the HTTP status the
# routers answer with; the message is safe to show to the caller.

from fastapi import status


class RequestServiceError(Exception):
    """Base class for user-facing request lifecycle errors"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(RequestServiceError):
    """Malformed address, unknown enum value or missing field"""
    status_code = status.HTTP_400_BAD_REQUEST


class AdminRequiredError(RequestServiceError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Unauthorized: Admin access required"):
        super().__init__(message)


class RequestNotFoundError(RequestServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class TransitionNotAllowedError(RequestServiceError):
    """Raised by the strict transition policy"""
    status_code = status.HTTP_409_CONFLICT


class SchemaLoadError(Exception):
    """A form schema document could not be fetched or parsed"""
    pass


class ComplianceOracleError(Exception):
    """The on-chain compliance read failed"""
    pass
