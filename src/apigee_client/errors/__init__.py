"""Error taxonomy and Apigee error payload parsing."""

from apigee_client.errors.exceptions import (
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)
from apigee_client.errors.handler import raise_for_status
from apigee_client.errors.models import ErrorDetail

__all__ = [
    "APIError",
    "BadRequestError",
    "ClientError",
    "ConflictError",
    "ErrorDetail",
    "NetworkError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "raise_for_status",
]
