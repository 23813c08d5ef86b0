"""
Customer API routes (read-only)
"""
from typing import List

from fastapi import APIRouter, Depends

from application.dto import CustomerDTO
from application.services.customer_service import CustomerApplicationService
from api.dependencies import get_customer_service
from core.response import Response as ApiResponse, success_response


router = APIRouter(
    prefix="/customers",
    tags=["Customers"]
)


@router.get("", summary="List customers", response_model=ApiResponse[List[CustomerDTO]])
async def list_customers(service: CustomerApplicationService = Depends(get_customer_service)):
    customers = await service.list_customers()
    return success_response(data=[CustomerDTO.from_entity(c) for c in customers])


@router.get("/{customer_id}", summary="Get a customer", response_model=ApiResponse[CustomerDTO])
async def get_customer(customer_id: int, service: CustomerApplicationService = Depends(get_customer_service)):
    customer = await service.get_customer(customer_id)
    return success_response(data=CustomerDTO.from_entity(customer))
