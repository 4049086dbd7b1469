# src/exceptions.py
from typing import Dict, List, Optional, Union
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Raised when request data is missing or invalid."""

    def __init__(self, message: str = "Validation failed", field_errors: Optional[Dict[str, List[str]]] = None):
        self.message = message
        self.field_errors = field_errors or {}
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": message, "field_errors": self.field_errors},
        )

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, {field: [message]})


class NotFoundError(HTTPException):
    """Raised when a resource is not found in the caller's organization."""

    def __init__(self, resource_type: str = "Resource", resource_id: Optional[Union[int, str]] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource_type} not found")


class ConflictError(HTTPException):
    """Raised when a concurrent write claimed the same renewal slot."""

    def __init__(self, message: str = "Subscription was modified concurrently, try again"):
        self.message = message
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=message)


class StorageError(HTTPException):
    """Raised when the database fails. The detail never carries internals."""

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)
