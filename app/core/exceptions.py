from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed input (missing date/class, invalid status, bad range)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class EmptyRosterError(ServiceError):
    """Bulk mark against a class with no active students. Informational, not a failure."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_200_OK)


class StorageError(ServiceError):
    """The database (event store or enrollment tables) failed. Never retried here."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)
