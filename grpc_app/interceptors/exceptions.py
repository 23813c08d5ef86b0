from __future__ import annotations

from typing import Callable, Awaitable
import contextvars

import grpc

from core.logging_config import get_logger
from grpc_app.interceptors.request_id import get_request_id
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode


logger = get_logger(__name__)

# Set once the current call's failure has been turned into a gRPC status
_mapped_error: contextvars.ContextVar[bool] = contextvars.ContextVar("grpc_mapped_error", default=False)


def set_mapped_error() -> None:
    _mapped_error.set(True)


def is_mapped_error() -> bool:
    return bool(_mapped_error.get())


_STATUS_BY_CODE = {
    BusinessCode.PARAM_VALIDATION_ERROR: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.PARAM_ERROR: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.PARAM_MISSING: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.PARAM_TYPE_ERROR: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.INVALID_INSERT: grpc.StatusCode.INVALID_ARGUMENT,
    BusinessCode.UNSUPPORTED_OPERATION: grpc.StatusCode.UNIMPLEMENTED,

    BusinessCode.USER_NOT_FOUND: grpc.StatusCode.NOT_FOUND,
    BusinessCode.CUSTOMER_NOT_FOUND: grpc.StatusCode.NOT_FOUND,
    BusinessCode.NOT_FOUND: grpc.StatusCode.NOT_FOUND,
    BusinessCode.USER_ALREADY_EXISTS: grpc.StatusCode.ALREADY_EXISTS,
    BusinessCode.BULK_REQUEST_ERROR: grpc.StatusCode.ABORTED,
    BusinessCode.BULK_TIMEOUT: grpc.StatusCode.DEADLINE_EXCEEDED,

    BusinessCode.SERVICE_UNAVAILABLE: grpc.StatusCode.UNAVAILABLE,
    BusinessCode.SYSTEM_ERROR: grpc.StatusCode.INTERNAL,
    BusinessCode.DATABASE_ERROR: grpc.StatusCode.INTERNAL,
}


def business_code_to_grpc_status(code: int) -> grpc.StatusCode:
    try:
        bc = BusinessCode(code)
    except ValueError:
        return grpc.StatusCode.FAILED_PRECONDITION
    return _STATUS_BY_CODE.get(bc, grpc.StatusCode.FAILED_PRECONDITION)


class ExceptionMappingInterceptor(grpc.aio.ServerInterceptor):
    """Abort with a gRPC status derived from the business code.

    The business code and error type travel as ``x-biz-code`` and
    ``x-error-type`` trailing metadata.
    """

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None:
            return handler

        async def _abort(context, status: grpc.StatusCode, code: int, error_type: str, message: str):
            context.set_trailing_metadata((
                ("x-biz-code", str(int(code))),
                ("x-error-type", error_type),
            ))
            set_mapped_error()
            logger.error(
                "grpc_mapped_error",
                method=handler_call_details.method,
                code=str(int(code)),
                status=str(status),
                message=message,
                request_id=get_request_id(),
            )
            await context.abort(status, message)

        async def _unary_unary(request, context: grpc.aio.ServicerContext):
            try:
                return await handler.unary_unary(request, context)
            except BusinessException as exc:
                await _abort(
                    context,
                    business_code_to_grpc_status(exc.code),
                    exc.code,
                    exc.error_type or "BusinessError",
                    exc.message,
                )
            except (grpc.RpcError, grpc.aio.AbortError):
                raise
            except Exception as exc:
                logger.error(
                    "grpc_unhandled_error",
                    method=handler_call_details.method,
                    error=str(exc),
                    exc_info=True,
                    request_id=get_request_id(),
                )
                await _abort(
                    context,
                    grpc.StatusCode.INTERNAL,
                    BusinessCode.SYSTEM_ERROR,
                    "SystemError",
                    "internal server error",
                )

        if handler.unary_unary:
            return grpc.unary_unary_rpc_method_handler(
                _unary_unary,
                request_deserializer=handler.request_deserializer,
                response_serializer=handler.response_serializer,
            )
        return handler
