"""Concurrent bulk processing of create/update requests."""
from application.bulk.builder import build_bulk_request
from application.bulk.coordinator import BulkCoordinator, run_batch
from application.bulk.processor import BulkProcessor, perform_operation
from application.bulk.types import (
    BatchResult,
    BulkConfigurationError,
    BulkRequest,
    OperationKind,
    Outcome,
    OutcomeStatus,
    Request,
    aggregate_overall_status,
)

__all__ = [
    "BatchResult",
    "BulkConfigurationError",
    "BulkCoordinator",
    "BulkProcessor",
    "BulkRequest",
    "OperationKind",
    "Outcome",
    "OutcomeStatus",
    "Request",
    "aggregate_overall_status",
    "build_bulk_request",
    "perform_operation",
    "run_batch",
]
