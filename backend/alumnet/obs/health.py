"""Liveness and readiness probes.

Readiness fails only when Postgres is unreachable; the media backend is
reported for visibility since uploads fail per request with their own error.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from time import perf_counter
from typing import Any

from alumnet.infra import postgres
from alumnet.settings import settings

_LOG = logging.getLogger(__name__)


async def check_postgres(timeout: float = 0.5) -> dict[str, Any]:
	started = perf_counter()
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.fetchval("SELECT 1"), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		_LOG.warning("health.postgres_unavailable", extra={"error": str(exc)})
		return {"ok": False, "error": exc.__class__.__name__}
	return {"ok": True, "latency_ms": round((perf_counter() - started) * 1000, 2)}


def check_media_backend() -> dict[str, Any]:
	if settings.media_backend == "local":
		root = Path(settings.media_upload_root)
		return {"backend": "local", "ok": root.is_dir() and os.access(root, os.W_OK)}
	return {
		"backend": "http",
		"bucket": settings.media_bucket,
		"ok": bool(settings.storage_url and settings.storage_service_key),
	}


async def liveness() -> dict[str, str]:
	return {"status": "ok"}


async def readiness() -> tuple[int, dict[str, Any]]:
	db = await check_postgres()
	ready = bool(db["ok"])
	body = {
		"status": "ok" if ready else "degraded",
		"checks": {"postgres": db, "media": check_media_backend()},
	}
	return (200 if ready else 503), body
