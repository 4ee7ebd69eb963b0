"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "docvault_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_latency_seconds = Histogram(
    "docvault_http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
)

processing_total = Counter(
    "docvault_processing_total",
    "Completed document processing passes by outcome",
    ["outcome"],
)

processing_stage_failures_total = Counter(
    "docvault_processing_stage_failures_total",
    "Document processing failures by pipeline stage",
    ["stage"],
)

retry_attempts_total = Counter(
    "docvault_retry_attempts_total",
    "Processing attempts made by the retry coordinator",
)

ai_fallbacks_total = Counter(
    "docvault_ai_fallbacks_total",
    "Summaries replaced by the error fallback, by failure category",
    ["category"],
)


def observe_request(method: str, path: str, status: int, duration_seconds: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_latency_seconds.labels(method=method, path=path).observe(duration_seconds)


def record_processing_outcome(outcome: str) -> None:
    processing_total.labels(outcome=outcome).inc()


def record_stage_failure(stage: str) -> None:
    processing_stage_failures_total.labels(stage=stage).inc()


def record_retry_attempt() -> None:
    retry_attempts_total.inc()


def record_ai_fallback(category: str) -> None:
    ai_fallbacks_total.labels(category=category).inc()
