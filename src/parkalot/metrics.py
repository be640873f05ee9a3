"""Prometheus metrics for parking availability refresh and queries."""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry, generate_latest

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

# Detection confidence histogram (0.0 to 1.0 in buckets)
DETECTION_CONFIDENCE = Histogram(
    "parkalot_detection_confidence",
    "Confidence score of space detections",
    ["class_name"],
    buckets=(0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0),
    registry=REGISTRY,
)

# Refresh cycle latency histogram (in seconds)
CYCLE_LATENCY = Histogram(
    "parkalot_refresh_cycle_latency_seconds",
    "Time taken to run a refresh cycle over all locations",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
    registry=REGISTRY,
)

# Refresh cycles by outcome (completed, failed, skipped)
REFRESH_CYCLES = Counter(
    "parkalot_refresh_cycles_total",
    "Total number of refresh cycles triggered",
    ["outcome"],
    registry=REGISTRY,
)

LOCATION_UPDATES = Counter(
    "parkalot_location_updates_total",
    "Number of successful per-location availability writes",
    registry=REGISTRY,
)

LOCATION_SKIPS = Counter(
    "parkalot_location_skips_total",
    "Number of locations skipped during a refresh cycle",
    ["reason"],
    registry=REGISTRY,
)

# Current availability per location
LOCATION_AVAILABLE = Gauge(
    "parkalot_location_available_spaces",
    "Most recently computed free spaces for a location",
    ["location_id"],
    registry=REGISTRY,
)

HEARTBEATS = Counter(
    "parkalot_heartbeats_total",
    "Number of heartbeat timestamp touches",
    ["outcome"],
    registry=REGISTRY,
)

STORE_RECONNECTS = Counter(
    "parkalot_store_reconnects_total",
    "Number of times the store client was discarded and rebuilt",
    registry=REGISTRY,
)

AGGREGATION_QUERIES = Counter(
    "parkalot_aggregation_queries_total",
    "Distance-ranked availability queries by outcome",
    ["outcome"],
    registry=REGISTRY,
)


def record_detection_confidence(class_name: str, confidence: float) -> None:
    """Record detection confidence for a class."""
    DETECTION_CONFIDENCE.labels(class_name=class_name).observe(confidence)


def record_cycle_latency(latency_seconds: float) -> None:
    """Record refresh cycle latency."""
    CYCLE_LATENCY.observe(latency_seconds)


def record_refresh_cycle(outcome: str) -> None:
    """Count a refresh cycle."""
    REFRESH_CYCLES.labels(outcome=outcome).inc()


def record_location_update(location_id: str, available: int) -> None:
    """Record a successful availability write."""
    LOCATION_UPDATES.inc()
    LOCATION_AVAILABLE.labels(location_id=location_id).set(available)


def record_location_skip(reason: str) -> None:
    """Record a location skipped during a cycle."""
    LOCATION_SKIPS.labels(reason=reason).inc()


def record_heartbeat(outcome: str) -> None:
    HEARTBEATS.labels(outcome=outcome).inc()


def increment_store_reconnects() -> None:
    STORE_RECONNECTS.inc()


def record_aggregation_query(outcome: str) -> None:
    """Count an aggregation query (ok, empty, degraded)."""
    AGGREGATION_QUERIES.labels(outcome=outcome).inc()


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)
