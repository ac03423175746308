"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram


REQUEST_COUNTER = Counter(
	"alumnet_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"alumnet_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

POSTS_CREATED = Counter(
	"alumnet_posts_created_total",
	"Posts persisted, by post type",
	["type"],
)

POSTS_UPDATED = Counter(
	"alumnet_posts_updated_total",
	"Posts edited in place",
)

MEDIA_UPLOADS = Counter(
	"alumnet_media_uploads_total",
	"Media files pushed to blob storage",
	["result"],
)

NOTIFICATIONS_FANNED_OUT = Counter(
	"alumnet_notifications_fanned_out_total",
	"Announcement notifications inserted by fan-out",
)

FANOUT_FAILURES = Counter(
	"alumnet_fanout_failures_total",
	"Announcement fan-out failures by stage",
	["stage"],
)

NOTIFICATIONS_MARKED = Counter(
	"alumnet_notifications_marked_total",
	"Notifications whose read state changed",
	["result"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_post_created(post_type: str) -> None:
	POSTS_CREATED.labels(type=post_type).inc()


def inc_post_updated() -> None:
	POSTS_UPDATED.inc()


def media_upload(result: str) -> None:
	MEDIA_UPLOADS.labels(result=result).inc()


def notifications_fanned_out(count: int) -> None:
	if count > 0:
		NOTIFICATIONS_FANNED_OUT.inc(count)


def fanout_failed(stage: str) -> None:
	FANOUT_FAILURES.labels(stage=stage).inc()


def notifications_marked(result: str, count: int = 1) -> None:
	if count > 0:
		NOTIFICATIONS_MARKED.labels(result=result).inc(count)
