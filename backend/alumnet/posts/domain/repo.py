"""Async repository helpers for posts and notifications."""

from __future__ import annotations

from base64 import b64decode, b64encode
from datetime import datetime
from typing import Iterable, Optional, Sequence
from uuid import UUID

from alumnet.infra.postgres import get_pool
from alumnet.posts.domain import models
from alumnet.posts.domain.exceptions import NotFoundError, ValidationError

CursorPair = tuple[datetime, UUID]


def encode_cursor(value: CursorPair) -> str:
	created_at, entity_id = value
	payload = f"{created_at.isoformat()}|{entity_id}"
	return b64encode(payload.encode()).decode()


def decode_cursor(cursor: str) -> CursorPair:
	try:
		decoded = b64decode(cursor.encode()).decode()
		created_str, id_str = decoded.split("|", maxsplit=1)
		return datetime.fromisoformat(created_str), UUID(id_str)
	except ValueError as exc:
		raise ValidationError("invalid_cursor") from exc


def _page(items: list, limit: int) -> tuple[list, str | None]:
	next_cursor = None
	if len(items) > limit:
		items.pop()  # drop sentinel row
		if items:
			tail = items[-1]
			next_cursor = encode_cursor((tail.created_at, tail.id))
	return items, next_cursor


class PostsRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Posts -------------------------------------------------------------

	async def create_post(
		self,
		*,
		author_id: UUID | str,
		title: str,
		content: str,
		post_type: models.PostType,
		media_urls: Optional[Sequence[str]],
		media_type: models.MediaType,
		target_skills: Optional[Sequence[str]],
		visibility: models.Visibility,
	) -> models.Post:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO posts (author_id, title, content, type, media_urls, media_type, target_skills, visibility)
				VALUES ($1, $2, $3, $4::post_type, $5, $6::post_media_type, $7, $8::post_visibility)
				RETURNING *
				""",
				str(author_id),
				title,
				content,
				post_type.value,
				list(media_urls) if media_urls else None,
				media_type.value,
				list(target_skills) if target_skills else None,
				visibility.value,
			)
		return models.Post.model_validate(dict(record))

	async def get_post(self, post_id: UUID | str) -> models.Post | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM posts WHERE id=$1", str(post_id))
		if not record:
			return None
		return models.Post.model_validate(dict(record))

	async def update_post(
		self,
		post_id: UUID | str,
		*,
		title: str,
		content: str,
		post_type: models.PostType,
	) -> models.Post:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE posts
				SET title=$2, content=$3, type=$4::post_type, updated_at=NOW()
				WHERE id=$1
				RETURNING *
				""",
				str(post_id),
				title,
				content,
				post_type.value,
			)
		if not record:
			raise NotFoundError("post_not_found")
		return models.Post.model_validate(dict(record))

	async def list_posts(
		self,
		*,
		types: Iterable[models.PostType],
		limit: int,
		after: CursorPair | None = None,
	) -> tuple[list[models.Post], str | None]:
		pool = await get_pool()
		params: list[object] = [[item.value for item in types]]
		conditions = ["type::text = ANY($1::text[])"]
		if after:
			params.extend([after[0], str(after[1])])
			conditions.append("(created_at, id) < ($%d, $%d)" % (len(params) - 1, len(params)))
		where_clause = " AND ".join(conditions)
		query = f"""
			SELECT * FROM posts
			WHERE {where_clause}
			ORDER BY created_at DESC, id DESC
			LIMIT ${len(params) + 1}
		"""
		params.append(limit + 1)
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		items = [models.Post.model_validate(dict(row)) for row in rows]
		return _page(items, limit)

	# --- Fan-out audience --------------------------------------------------

	async def list_member_ids(
		self,
		*,
		exclude: UUID | str,
		after: UUID | None = None,
		limit: int,
	) -> list[UUID]:
		"""Return one page of member ids ordered by id, skipping ``exclude``."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT id FROM profiles
				WHERE id <> $1 AND ($2::uuid IS NULL OR id > $2::uuid)
				ORDER BY id
				LIMIT $3
				""",
				str(exclude),
				str(after) if after else None,
				limit,
			)
		return [row["id"] for row in rows]

	async def insert_notifications(self, drafts: Sequence[models.NotificationDraft]) -> int:
		"""Insert every draft in a single transaction; all or nothing."""
		if not drafts:
			return 0
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.executemany(
					"""
					INSERT INTO notifications (user_id, type, title, content, related_id)
					VALUES ($1, $2::notification_type, $3, $4, $5)
					""",
					[
						(
							str(draft.user_id),
							draft.type.value,
							draft.title,
							draft.content,
							str(draft.related_id) if draft.related_id else None,
						)
						for draft in drafts
					],
				)
		return len(drafts)

	# --- Notifications -----------------------------------------------------

	async def list_notifications(
		self,
		user_id: UUID | str,
		*,
		limit: int,
		after: CursorPair | None = None,
	) -> tuple[list[models.Notification], str | None]:
		pool = await get_pool()
		params: list[object] = [str(user_id)]
		conditions = ["user_id=$1"]
		if after:
			params.extend([after[0], str(after[1])])
			conditions.append("(created_at, id) < ($%d, $%d)" % (len(params) - 1, len(params)))
		where_clause = " AND ".join(conditions)
		query = f"""
			SELECT * FROM notifications
			WHERE {where_clause}
			ORDER BY created_at DESC, id DESC
			LIMIT ${len(params) + 1}
		"""
		params.append(limit + 1)
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		items = [models.Notification.model_validate(dict(row)) for row in rows]
		return _page(items, limit)

	async def mark_notifications_read(self, user_id: UUID | str, *, ids: Sequence[UUID]) -> int:
		if not ids:
			return 0
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				UPDATE notifications
				SET read = TRUE
				WHERE user_id=$1 AND id = ANY($2::uuid[]) AND read = FALSE
				RETURNING id
				""",
				str(user_id),
				[str(item) for item in ids],
			)
		return len(rows)

	async def mark_all_read(self, user_id: UUID | str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"UPDATE notifications SET read = TRUE WHERE user_id=$1 AND read = FALSE",
				str(user_id),
			)
		return int(result.split()[-1]) if result.startswith("UPDATE") else 0

	async def unread_count(self, user_id: UUID | str) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT COUNT(*) FROM notifications WHERE user_id=$1 AND read = FALSE",
				str(user_id),
			)
		return int(value or 0)
