"""Domain errors raised by services and mapped to HTTP responses in main."""

from fastapi import status


class BakeError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "unexpected"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(BakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"


class NotFound(BakeError):
    """Missing rows and rows owned by someone else look the same to callers."""
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Forbidden(BakeError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class InvalidState(BakeError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"


class Conflict(BakeError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class AIUnavailable(BakeError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "ai_unavailable"
