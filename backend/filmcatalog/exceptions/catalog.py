from fastapi import status

from .base import AppError


class RemoteProviderError(AppError):
    """TMDb could not be reached or answered with something unusable."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Remote movie provider request failed"


class IngestError(AppError):
    """A remote record could not be stored; the whole batch is abandoned."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "Remote movie record could not be ingested"


class InvalidFilterError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid search filters"


class MovieNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "movie not found"


class UnknownGenreError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "unknown genre"


class MovieValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "invalid movie fields"
