from .base import AppError
from .catalog import (
    IngestError,
    InvalidFilterError,
    MovieNotFoundError,
    MovieValidationError,
    RemoteProviderError,
    UnknownGenreError,
)

__all__ = [
    "AppError",
    "IngestError",
    "InvalidFilterError",
    "MovieNotFoundError",
    "MovieValidationError",
    "RemoteProviderError",
    "UnknownGenreError",
]
