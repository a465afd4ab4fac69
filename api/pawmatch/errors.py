from enum import Enum

from sqlalchemy.exc import DBAPIError, OperationalError


class ErrorKind(str, Enum):
    NETWORK = "network"
    LOCATION = "location"
    PERMISSION = "permission"
    GENERAL = "general"


class EngineError(Exception):
    kind = ErrorKind.GENERAL
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NetworkError(EngineError):
    kind = ErrorKind.NETWORK
    default_message = "Network error"


class LocationError(EngineError):
    kind = ErrorKind.LOCATION
    default_message = "Location services required"


class PermissionDeniedError(EngineError):
    kind = ErrorKind.PERMISSION
    default_message = "Permission denied"


class GeneralError(EngineError):
    kind = ErrorKind.GENERAL


def classify_error(exc: BaseException) -> EngineError:
    if isinstance(exc, EngineError):
        return exc
    if isinstance(exc, PermissionError):
        return PermissionDeniedError()
    if isinstance(exc, (OSError, OperationalError, DBAPIError)):
        return NetworkError()
    return GeneralError(f"Unexpected error: {exc}")
