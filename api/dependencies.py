"""
API dependencies - wire application services to the request
"""
from functools import partial
from typing import Callable, Optional

from fastapi import Depends, Request

from application.services.customer_service import CustomerApplicationService
from application.services.user_service import UserApplicationService
from core.config import settings
from core.metrics import ServiceMetrics
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


def get_metrics(request: Request) -> Optional[ServiceMetrics]:
    return getattr(request.app.state, "metrics", None)


def get_uow_factory(
    metrics: Optional[ServiceMetrics] = Depends(get_metrics),
) -> Callable[..., AbstractUnitOfWork]:
    return partial(SQLAlchemyUnitOfWork, metrics=metrics)


async def get_user_service(
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
    metrics: Optional[ServiceMetrics] = Depends(get_metrics),
) -> UserApplicationService:
    return UserApplicationService(
        uow_factory,
        max_bulk_ops=settings.bulk.max_concurrency,
        bulk_timeout=settings.bulk.timeout_seconds,
        metrics=metrics,
    )


async def get_customer_service(
    uow_factory: Callable[..., AbstractUnitOfWork] = Depends(get_uow_factory),
) -> CustomerApplicationService:
    return CustomerApplicationService(uow_factory)
