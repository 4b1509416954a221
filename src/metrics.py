"""Prometheus metrics for the Keystone/Manila bridge."""

from prometheus_client import Counter, Histogram

# Share access metrics
ACCESS_GRANTS = Counter(
    "keystone_manila_bridge_access_grants_total",
    "Total number of Manila grant access requests",
    ["status"],
)

ACCESS_POLLS = Counter(
    "keystone_manila_bridge_access_polls_total",
    "Total number of Manila access rule polls",
    ["result"],
)

ACCESS_PROVISION_TOTAL = Counter(
    "keystone_manila_bridge_access_provision_total",
    "Total number of share access provisioning attempts by outcome",
    ["outcome"],
)

ACCESS_PROVISION_DURATION = Histogram(
    "keystone_manila_bridge_access_provision_duration_seconds",
    "Time spent granting access and waiting for the access key",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

MANILA_API_RETRIES = Counter(
    "keystone_manila_bridge_manila_api_retries_total",
    "Total number of retried Manila API calls",
    ["operation"],
)

# Kubernetes Secret metrics
SECRET_OPERATIONS = Counter(
    "keystone_manila_bridge_secret_operations_total",
    "Total number of share Secret operations",
    ["operation", "status"],
)

# Namespace naming metrics
NAMESPACE_NAME_FALLBACKS = Counter(
    "keystone_manila_bridge_namespace_name_fallbacks_total",
    "Number of generated namespace names replaced by the bare project id",
)

PROVISION_OUTCOMES = [
    "success",
    "grant_error",
    "poll_error",
    "inconsistent",
    "timeout",
]


def init_metrics() -> None:
    """Initialize all metrics with zero values.

    Prometheus metrics with labels don't appear until used.
    This ensures all metrics are visible immediately at startup.
    """
    statuses = ["success", "error"]

    for status in statuses:
        ACCESS_GRANTS.labels(status=status)
        for operation in ["create", "delete"]:
            SECRET_OPERATIONS.labels(operation=operation, status=status)

    for result in ["pending", "ready", "error"]:
        ACCESS_POLLS.labels(result=result)

    for outcome in PROVISION_OUTCOMES:
        ACCESS_PROVISION_TOTAL.labels(outcome=outcome)
