"""Prometheus metrics for the verification pipeline.

This module provides application metrics for:
- Verification outcomes
- Chain strategy attempts, failures and latency
- Ownership rule usage (including the loose substring fallback)
- Grants issued and best-effort audit write failures

Metrics are exposed at /metrics endpoint for Prometheus scraping.
"""

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

# Verification metrics
verification_outcomes_total = Counter(
    "tokengate_verification_outcomes_total",
    "Total verification calls by terminal state",
    ["state", "reason"],
)

verification_cache_hits_total = Counter(
    "tokengate_verification_cache_hits_total",
    "Verifications answered from a cached grant",
)

# Chain query metrics
chain_strategy_attempts_total = Counter(
    "tokengate_chain_strategy_attempts_total",
    "Chain query strategy attempts",
    ["strategy", "result"],  # records, empty, error, timeout
)

chain_strategy_duration_seconds = Histogram(
    "tokengate_chain_strategy_duration_seconds",
    "Chain query strategy duration in seconds",
    ["strategy"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# Ownership metrics
ownership_matches_total = Counter(
    "tokengate_ownership_matches_total",
    "Ownership matches by rule",
    ["rule"],
)

# Grant metrics
access_grants_total = Counter(
    "tokengate_access_grants_total",
    "Signed asset URLs issued",
)

audit_write_failures_total = Counter(
    "tokengate_audit_write_failures_total",
    "Failed best-effort writes after a grant",
    ["operation"],  # view_counter, access_log
)


def get_metrics() -> Response:
    """Generate Prometheus metrics response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def track_verification(state: str, reason: str | None = None):
    """Track a terminal verification state.

    Args:
        state: granted, denied, chain_unavailable or content_unavailable
        reason: Denial reason, if any
    """
    verification_outcomes_total.labels(state=state, reason=reason or "none").inc()


def track_strategy_attempt(strategy: str, result: str, duration: float):
    """Track a single chain strategy attempt.

    Args:
        strategy: Strategy name
        result: records, empty, error or timeout
        duration: Attempt duration in seconds
    """
    chain_strategy_attempts_total.labels(strategy=strategy, result=result).inc()
    chain_strategy_duration_seconds.labels(strategy=strategy).observe(duration)


def track_ownership_match(rule: str):
    ownership_matches_total.labels(rule=rule).inc()


def track_audit_write_failure(operation: str):
    audit_write_failures_total.labels(operation=operation).inc()
