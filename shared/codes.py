"""
Shared business codes used across layers (Domain/Core/API/gRPC).

A bulk outcome carries one of these values as its ``error_reason``;
``SUCCESS`` (0) means the item did not fail.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_TYPE_ERROR = 10002
    PARAM_VALIDATION_ERROR = 10003
    INVALID_INSERT = 10004  # id supplied on create

    # Business errors (2xxxx)
    BUSINESS_ERROR = 20000
    USER_NOT_FOUND = 20001
    USER_ALREADY_EXISTS = 20002
    NOT_FOUND = 20006  # Generic resource not found
    CUSTOMER_NOT_FOUND = 20007
    BULK_REQUEST_ERROR = 20100  # part or all of a bulk request failed
    UNSUPPORTED_OPERATION = 20101
    BULK_TIMEOUT = 20102

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    DATABASE_ERROR = 40001
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
