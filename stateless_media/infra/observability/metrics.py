from prometheus_client import Counter, Histogram

# Low-cardinality labels only: never put object names in a label.
OPERATIONS = Counter(
    "storage_operations_total",
    "Total storage client operations",
    ["operation", "outcome"],
)

LATENCY = Histogram(
    "storage_operation_duration_seconds",
    "Storage operation latency in seconds",
    ["operation"],
)
