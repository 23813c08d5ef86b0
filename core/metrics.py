"""Prometheus metrics bound to an explicitly constructed registry.

One ``ServiceMetrics`` is built at application startup and handed to the
components that record metrics (HTTP middleware, repositories, bulk
processing). Nothing registers into ``prometheus_client.REGISTRY``, so tests
and multiple app instances never collide on metric names.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from prometheus_client import CONTENT_TYPE_LATEST


# Mirrors the linear 1ms..~200ms layout used for request durations
_DURATION_BUCKETS = tuple(round(0.001 + 0.004 * i, 3) for i in range(50))


class ServiceMetrics:
    def __init__(self, registry: Optional[CollectorRegistry] = None, namespace: str = "mockvideo") -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.request_duration = Histogram(
            "request_duration_seconds",
            "HTTP request duration distribution in seconds",
            ["method", "route", "status"],
            namespace=namespace,
            subsystem="http",
            buckets=_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.rpc_duration = Histogram(
            "request_duration_seconds",
            "gRPC call duration distribution in seconds",
            ["method", "code"],
            namespace=namespace,
            subsystem="grpc",
            buckets=_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.db_request_duration = Histogram(
            "db_request_duration_seconds",
            "Database request duration distribution in seconds",
            ["target", "operation", "result"],
            namespace=namespace,
            subsystem="database",
            buckets=_DURATION_BUCKETS,
            registry=self.registry,
        )
        self.bulk_batch_duration = Histogram(
            "batch_duration_seconds",
            "Bulk request duration distribution in seconds",
            ["kind", "overall_status"],
            namespace=namespace,
            subsystem="bulk",
            registry=self.registry,
        )
        self.bulk_items = Counter(
            "items_total",
            "Bulk items processed, by outcome status",
            ["kind", "status"],
            namespace=namespace,
            subsystem="bulk",
            registry=self.registry,
        )
        self.bulk_inflight = Gauge(
            "inflight_operations",
            "Bulk store operations currently executing",
            namespace=namespace,
            subsystem="bulk",
            registry=self.registry,
        )

    def observe_request(self, method: str, route: str, status: int, seconds: float) -> None:
        self.request_duration.labels(method=method, route=route, status=str(status)).observe(seconds)

    def observe_rpc(self, method: str, code: str, seconds: float) -> None:
        self.rpc_duration.labels(method=method, code=code).observe(seconds)

    @contextmanager
    def time_db(self, target: str, operation: str) -> Iterator[None]:
        """Time a database call, labelling the result ``ok`` or ``error``."""
        start = time.perf_counter()
        result = "ok"
        try:
            yield
        except Exception:
            result = "error"
            raise
        finally:
            self.db_request_duration.labels(
                target=target, operation=operation, result=result
            ).observe(time.perf_counter() - start)

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST


__all__ = ["ServiceMetrics"]
