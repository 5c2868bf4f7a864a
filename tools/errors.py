"""Errors raised by the tailoring backend clients."""

from typing import Optional

from pydantic import BaseModel


class ServiceErrorInfo(BaseModel):
    """Serializable view of a ServiceError, returned to callers as data."""

    operation: str
    message: str
    status_code: Optional[int] = None


class ServiceError(Exception):
    """A call to an external collaborator failed.

    Recoverable: the wizard keeps the draft and the current step so the user
    can retry.
    """

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    def to_info(self) -> ServiceErrorInfo:
        return ServiceErrorInfo(
            operation=self.operation,
            message=self.message,
            status_code=self.status_code,
        )
