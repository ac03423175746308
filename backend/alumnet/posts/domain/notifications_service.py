"""Service helpers for the member notification inbox."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from alumnet.infra.auth import AuthenticatedUser
from alumnet.obs import metrics as obs_metrics
from alumnet.posts.domain import repo as repo_module
from alumnet.posts.domain.exceptions import ForbiddenError
from alumnet.posts.domain.models import Notification
from alumnet.posts.schemas import dto

_LOG = logging.getLogger(__name__)


def _user_uuid(user: AuthenticatedUser) -> UUID:
	try:
		return UUID(str(user.id))
	except ValueError as exc:
		raise ForbiddenError("invalid_user") from exc


class NotificationService:
	"""Encapsulates notification queries and read state."""

	def __init__(self, *, repository: repo_module.PostsRepository | None = None) -> None:
		self.repo = repository or repo_module.PostsRepository()

	@staticmethod
	def to_response(entity: Notification) -> dto.NotificationResponse:
		return dto.NotificationResponse(
			id=entity.id,
			user_id=entity.user_id,
			type=entity.type,
			title=entity.title,
			content=entity.content,
			read=entity.read,
			related_id=entity.related_id,
			created_at=entity.created_at,
		)

	async def list_notifications(
		self,
		user: AuthenticatedUser,
		*,
		limit: int,
		cursor: Optional[str] = None,
	) -> dto.NotificationListResponse:
		limit = max(1, min(limit, 50))
		after = repo_module.decode_cursor(cursor) if cursor else None
		items, next_cursor = await self.repo.list_notifications(_user_uuid(user), limit=limit, after=after)
		return dto.NotificationListResponse(
			items=[self.to_response(item) for item in items],
			next_cursor=next_cursor,
		)

	async def mark_read(self, user: AuthenticatedUser, payload: dto.NotificationMarkReadRequest) -> int:
		updated = await self.repo.mark_notifications_read(_user_uuid(user), ids=list(payload.ids))
		obs_metrics.notifications_marked("read", updated)
		return updated

	async def mark_all_read(self, user: AuthenticatedUser) -> int:
		updated = await self.repo.mark_all_read(_user_uuid(user))
		obs_metrics.notifications_marked("read_all", updated)
		_LOG.info("notifications.mark_all_read", extra={"updated": updated})
		return updated

	async def unread_count(self, user: AuthenticatedUser) -> int:
		return await self.repo.unread_count(_user_uuid(user))
