"""Domain-level business exceptions shared by the domain and infrastructure layers.

The core layer only maps these to transport responses; the domain never
imports from core.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """Base class for business errors"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class UserNotFoundException(BusinessException):
    def __init__(self, user_id: Optional[int] = None):
        details = {"user_id": user_id} if user_id is not None else None
        super().__init__(
            code=BusinessCode.USER_NOT_FOUND,
            message="attempted operation on a non-existent user",
            error_type="UserNotFound",
            details=details,
        )


class UserAlreadyExistsException(BusinessException):
    def __init__(self, email: str):
        super().__init__(
            code=BusinessCode.USER_ALREADY_EXISTS,
            message=f"attempt to insert duplicate user, email {email} already registered",
            error_type="UserAlreadyExists",
            details={"email": email},
            field="email",
        )


class InvalidInsertException(BusinessException):
    def __init__(self, user_id: int):
        super().__init__(
            code=BusinessCode.INVALID_INSERT,
            message=f"unexpected user id in insert request, expected 0, got {user_id}",
            error_type="InvalidInsert",
            details={"user_id": user_id},
            field="id",
        )


class CustomerNotFoundException(BusinessException):
    def __init__(self, customer_id: Optional[int] = None):
        details = {"customer_id": customer_id} if customer_id is not None else None
        super().__init__(
            code=BusinessCode.CUSTOMER_NOT_FOUND,
            message="Customer not found",
            error_type="CustomerNotFound",
            details=details,
        )


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class UnsupportedOperationException(BusinessException):
    def __init__(self, operation: str):
        super().__init__(
            code=BusinessCode.UNSUPPORTED_OPERATION,
            message=f"bulk operation {operation} not supported",
            error_type="UnsupportedOperation",
            details={"operation": operation},
        )
