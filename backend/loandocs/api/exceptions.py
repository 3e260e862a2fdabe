"""
Custom exceptions for API layer.
Separates business exceptions from HTTP exceptions.
"""
from fastapi import HTTPException, status


class DocumentNotFoundError(Exception):
    """Raised when document is not found."""
    pass


class UserNotFoundError(Exception):
    """Raised when user is not found."""
    pass


class DuplicateUserError(Exception):
    """Raised when a username is already taken."""
    pass


class InvalidBatchError(Exception):
    """Raised when an upload batch is missing required batch-level input."""
    pass


class LoanAccessDeniedError(Exception):
    """Raised when a user may not view a loan."""
    pass


def handle_business_exception(e: Exception) -> HTTPException:
    """
    Convert business exceptions to HTTP exceptions.
    This keeps business logic clean of HTTP concerns.
    """
    if isinstance(e, (DocumentNotFoundError, UserNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    elif isinstance(e, DuplicateUserError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    elif isinstance(e, (InvalidBatchError, ValueError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    elif isinstance(e, LoanAccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    else:
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
