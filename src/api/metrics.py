from prometheus_client import Counter, Histogram, Gauge, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        # If it already exists, retrieve it from the registry
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "calfill_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "calfill_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

EVENTS_TOTAL = get_or_create_metric(
    "calfill_events_total",
    "Calendar events by creation outcome",
    Counter,
    labelnames=["outcome"],
)

CONTENT_SOURCE_TOTAL = get_or_create_metric(
    "calfill_content_source_total",
    "Where event content came from",
    Counter,
    labelnames=["source"],
)

PROVIDER_RETRIES_TOTAL = get_or_create_metric(
    "calfill_provider_retries_total", "Content provider retries", Counter
)

CACHE_ENTRIES = get_or_create_metric(
    "calfill_cache_entries", "Entries currently held in the content cache", Gauge
)
