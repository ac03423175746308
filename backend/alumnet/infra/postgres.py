"""Process-wide asyncpg pool shared by the posts and notifications repositories."""

from __future__ import annotations

import logging
from typing import Optional

import asyncpg

from alumnet.settings import settings

_LOG = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None


def _dsn() -> str:
	# asyncpg resolves "localhost" to ::1 first on some hosts where Postgres only binds IPv4
	return settings.postgres_url.replace("@localhost", "@127.0.0.1")


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=_dsn(),
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else None,
		)
		_LOG.info(
			"postgres.pool_ready",
			extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	if _pool is None:
		raise RuntimeError("postgres_pool_unavailable")
	return _pool


async def close_pool() -> None:
	global _pool
	pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
