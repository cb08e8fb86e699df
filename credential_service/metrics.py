"""Prometheus instruments for credential operations."""

from __future__ import annotations

from prometheus_client import Counter

CREDENTIAL_OPERATIONS = Counter(
    "credential_operations_total",
    "Credential service operations by outcome.",
    ["operation", "outcome"],
)


def record_outcome(operation: str, outcome: str) -> None:
    CREDENTIAL_OPERATIONS.labels(operation=operation, outcome=outcome).inc()
