"""Conversion of service-layer errors into HTTP responses."""
from fastapi import HTTPException, status

from services.exceptions import (
    CascadePolicyRequiredError,
    NotAuthenticatedError,
    NotFoundError,
    TagAlreadyExistsError,
    TransportError,
    ValidationError,
)

DOMAIN_ERRORS = (
    ValidationError,
    NotFoundError,
    NotAuthenticatedError,
    TransportError,
)


def to_http_exception(exc: Exception) -> HTTPException:
    """
    Map a service exception to the HTTPException the client should see.

    Subclasses are checked before ValidationError so folder cascade prompts and
    tag name conflicts answer 409 instead of 400.
    """
    if isinstance(exc, CascadePolicyRequiredError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": "cascade_policy_required",
                "message": str(exc),
                "folder_id": exc.folder_id,
                "bookmark_count": exc.bookmark_count,
            },
        )
    if isinstance(exc, TagAlreadyExistsError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotAuthenticatedError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=str(TransportError()),
    )
