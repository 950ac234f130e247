"""Prometheus instrumentation for header binding.

Labels stay coarse (result + reason) so a misbehaving client cannot blow up
cardinality by sending arbitrary header names.
"""
from __future__ import annotations
from prometheus_client import (
    CollectorRegistry,
    Counter,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

REGISTRY = CollectorRegistry()

BINDING_COUNTER = Counter(
    "hdrbind_header_bindings_total",
    "Header binding attempts by outcome.",
    ["result", "reason"],
    registry=REGISTRY,
)
PARAM_COUNTER = Counter(
    "hdrbind_header_params_bound_total",
    "Header parameters bound successfully.",
    registry=REGISTRY,
)

REASONS = ("ok", "missing", "cast", "validation")


def observe_binding(*, reason: str, params: int = 0):
    result = "ok" if reason == "ok" else "fail"
    if reason not in REASONS:
        reason = "other"
    BINDING_COUNTER.labels(result=result, reason=reason).inc()
    if params:
        PARAM_COUNTER.inc(params)


def binding_count(result: str, reason: str) -> float:
    value = REGISTRY.get_sample_value(
        "hdrbind_header_bindings_total", {"result": result, "reason": reason}
    )
    return value or 0.0


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
