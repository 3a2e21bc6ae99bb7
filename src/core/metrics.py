"""
Warmup Metrics

Prometheus collectors exposed at /metrics.
"""

from prometheus_client import Counter, Histogram

WARMUP_INVOCATIONS = Counter(
    "lambda_warmup_invocations_total",
    "Warmup invocations by strategy and outcome",
    ["strategy", "outcome"],
)

WARMUP_RUNS = Counter(
    "lambda_warmup_runs_total",
    "Warmup runs by strategy and status",
    ["strategy", "status"],
)

WARMUP_DISPATCH_SECONDS = Histogram(
    "lambda_warmup_dispatch_seconds",
    "Duration of a strategy dispatch call",
    ["strategy"],
)
