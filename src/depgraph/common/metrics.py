"""Prometheus metrics for the dependency graph engine."""

from prometheus_client import Counter, Histogram, Info

# Application info
APP_INFO = Info(
    "depgraph",
    "depgraph application information",
)

# Graph mutation metrics
NODES_CREATED = Counter(
    "depgraph_nodes_created_total",
    "Total number of nodes created",
    ["role"],
)

NODES_UPDATED = Counter(
    "depgraph_nodes_updated_total",
    "Total number of node upserts that changed stored attributes",
)

CONNECTIONS_UPSERTED = Counter(
    "depgraph_connections_upserted_total",
    "Total number of connection upserts",
)

EDGES_CREATED = Counter(
    "depgraph_edges_created_total",
    "Total number of edges created",
)

EDGES_DELETED = Counter(
    "depgraph_edges_deleted_total",
    "Total number of edges deleted",
)

# Ingestion metrics
RECORDS_INGESTED = Counter(
    "depgraph_records_ingested_total",
    "Total number of dependency records applied",
)

INGEST_FAILURES = Counter(
    "depgraph_ingest_failures_total",
    "Total number of failed ingestion batches",
    ["error_code"],
)

INGEST_LATENCY = Histogram(
    "depgraph_ingest_latency_seconds",
    "Time to ingest a batch of dependency records",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

# API metrics
API_REQUESTS = Counter(
    "depgraph_api_requests_total",
    "Total number of API requests",
    ["method", "endpoint", "status"],
)

API_REQUEST_DURATION = Histogram(
    "depgraph_api_request_duration_seconds",
    "API request duration",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


def set_app_info(version: str, environment: str) -> None:
    """Set application info metric."""
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })
