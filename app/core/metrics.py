"""Prometheus metrics for monitoring"""
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry

registry = CollectorRegistry()

request_count = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

quote_transitions = Counter(
    'quote_transitions_total',
    'Total quote status transitions',
    ['event', 'from_status', 'to_status'],
    registry=registry
)

quote_actions_recorded = Counter(
    'quote_actions_recorded_total',
    'Total quote audit actions written',
    ['action_type', 'status'],
    registry=registry
)

rules_cache_hits = Counter(
    'parts_rules_cache_hits_total',
    'Total parts rules cache hits',
    registry=registry
)

rules_cache_misses = Counter(
    'parts_rules_cache_misses_total',
    'Total parts rules cache misses',
    registry=registry
)

rate_limit_exceeded = Counter(
    'rate_limit_exceeded_total',
    'Total rate limit exceeded events',
    ['user_id'],
    registry=registry
)

webhook_deliveries = Counter(
    'webhook_deliveries_total',
    'Total webhook delivery attempts',
    ['status'],
    registry=registry
)

redis_connected = Gauge(
    'redis_connected',
    'Redis connection status (1=connected, 0=disconnected)',
    registry=registry
)

db_connected = Gauge(
    'db_connected',
    'Database connection status (1=connected, 0=disconnected)',
    registry=registry
)


def get_metrics_text() -> str:
    """Generate Prometheus metrics in text format"""
    from prometheus_client import generate_latest
    return generate_latest(registry).decode('utf-8')
