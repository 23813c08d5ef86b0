"""
User API routes - FastAPI presentation layer

``POST /users`` and ``PUT /users`` switch to bulk mode when the request
carries ``Bulk-Request: true``; the body is then ``{"users": [...]}``.
"""
from typing import Any, List

from fastapi import APIRouter, Body, Depends, Header, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from application.bulk.types import BatchResult, OutcomeStatus
from application.dto import BulkResponseDTO, UserDTO, UsersDTO
from application.services.user_service import UserApplicationService
from api.dependencies import get_user_service
from core.response import Response as ApiResponse, success_response
from domain.common.exceptions import BusinessException, DomainValidationException
from domain.user.entity import User
from shared.codes import BusinessCode


router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


def _parse(model: type[BaseModel], payload: Any) -> Any:
    """Validate a raw body, reporting failures like FastAPI's own body validation"""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(
            [{**err, "loc": ("body", *err["loc"])} for err in exc.errors(include_url=False, include_context=False)]
        ) from exc


def _bulk_response(batch: BatchResult[User], success_status: int) -> JSONResponse:
    body = BulkResponseDTO.from_batch(batch)
    if batch.overall_status == OutcomeStatus.CONFLICT:
        envelope = success_response(
            data=body.model_dump(mode="json"),
            message=f"{len(batch.failed)} of {len(batch.outcomes)} users failed",
            code=BusinessCode.BULK_REQUEST_ERROR,
        )
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=envelope.model_dump(mode="json"))
    envelope = success_response(data=body.model_dump(mode="json"))
    return JSONResponse(status_code=success_status, content=envelope.model_dump(mode="json"))


@router.get("", summary="List users", response_model=ApiResponse[List[UserDTO]])
async def list_users(service: UserApplicationService = Depends(get_user_service)):
    users = await service.list_users()
    return success_response(data=[UserDTO.from_entity(u) for u in users])


@router.get("/{user_id}", summary="Get a user", response_model=ApiResponse[UserDTO])
async def get_user(user_id: int, service: UserApplicationService = Depends(get_user_service)):
    user = await service.get_user(user_id)
    return success_response(data=UserDTO.from_entity(user))


@router.post(
    "",
    summary="Create one user, or many with Bulk-Request: true",
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "At least one user in a bulk request failed"}},
)
async def create_users(
    payload: Any = Body(...),
    bulk_request: bool = Header(False, alias="Bulk-Request"),
    service: UserApplicationService = Depends(get_user_service),
):
    if bulk_request:
        users = _parse(UsersDTO, payload)
        batch = await service.create_users([u.to_entity() for u in users.users])
        return _bulk_response(batch, status.HTTP_201_CREATED)

    dto = _parse(UserDTO, payload)
    user_id = await service.create_user(dto.to_entity())
    created = dto.model_copy(update={"id": user_id, "href": f"/users/{user_id}"})
    envelope = success_response(data=created.model_dump(mode="json"), message="User created")
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=envelope.model_dump(mode="json"),
        headers={"Location": created.href},
    )


@router.put(
    "",
    summary="Update many users (requires Bulk-Request: true)",
    responses={409: {"description": "At least one user failed to update"}},
)
async def update_users(
    payload: Any = Body(...),
    bulk_request: bool = Header(False, alias="Bulk-Request"),
    service: UserApplicationService = Depends(get_user_service),
):
    if not bulk_request:
        raise BusinessException(
            code=BusinessCode.PARAM_MISSING,
            message="PUT /users requires the Bulk-Request: true header; use PUT /users/{id} for a single user",
            error_type="BulkHeaderMissing",
            field="Bulk-Request",
        )
    users = _parse(UsersDTO, payload)
    batch = await service.update_users([u.to_entity() for u in users.users])
    return _bulk_response(batch, status.HTTP_200_OK)


@router.put("/{user_id}", summary="Update a user", response_model=ApiResponse[UserDTO])
async def update_user(
    user_id: int,
    payload: Any = Body(...),
    service: UserApplicationService = Depends(get_user_service),
):
    dto = _parse(UserDTO, payload)
    if dto.id not in (0, user_id):
        raise DomainValidationException(
            f"user id in body ({dto.id}) does not match the id in the path ({user_id})",
            field="id",
        )
    user = dto.to_entity()
    user.id = user_id
    await service.update_user(user)
    return success_response(data=UserDTO.from_entity(user), message="User updated")


@router.delete("/{user_id}", summary="Delete a user", response_model=ApiResponse[Any])
async def delete_user(user_id: int, service: UserApplicationService = Depends(get_user_service)):
    await service.delete_user(user_id)
    return success_response(message="User deleted")
