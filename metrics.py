from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

registry = CollectorRegistry()

http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "route", "status"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "Duration of HTTP requests in seconds",
    ["method", "route", "status"],
    registry=registry,
)


def observe_request(method: str, route: str, status: int, duration_secs: float) -> None:
    labels = {"method": method, "route": route, "status": str(status)}
    http_requests_total.labels(**labels).inc()
    http_request_duration_seconds.labels(**labels).observe(duration_secs)


def render_latest() -> bytes:
    return generate_latest(registry)
