from prometheus_client import Counter
# Prometheus metrics definitions

# Storage tier failures, labelled by tier name and operation
# (probe/read/write/delete). A failure here never reaches the caller.
tier_failures_total = Counter(
    "tier_failures_total",
    "Contained storage tier failures",
    ["tier", "operation"],
)

# Pull/push round-trips against the remote account
remote_sync_total = Counter(
    "remote_sync_total",
    "Remote account sync attempts",
    ["direction", "status"],
)

# Which audit tier finally accepted a login event
login_log_writes_total = Counter(
    "login_log_writes_total",
    "Login log entries written, by backing store",
    ["source"],
)

__all__ = [
    "tier_failures_total",
    "remote_sync_total",
    "login_log_writes_total",
]
