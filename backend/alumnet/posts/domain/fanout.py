"""Announcement fan-out: one notification per member, excluding the author.

The fan-out runs after the post insert has committed and is best-effort: a
failure is logged and counted but never undoes the post or reaches the caller.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional
from uuid import UUID

from alumnet.obs import metrics as obs_metrics
from alumnet.posts.domain import models
from alumnet.posts.domain import repo as repo_module
from alumnet.posts.domain.exceptions import FanoutError
from alumnet.settings import settings

_LOG = logging.getLogger(__name__)

ANNOUNCEMENT_TITLE = "New Announcement"
EXCERPT_LIMIT = 100


def announcement_excerpt(title: str) -> str:
	if len(title) > EXCERPT_LIMIT:
		return f"{title[:EXCERPT_LIMIT]}..."
	return title


def build_notification(post: models.Post, user_id: UUID) -> models.NotificationDraft:
	return models.NotificationDraft(
		user_id=user_id,
		type=models.NotificationType.ANNOUNCEMENT,
		title=ANNOUNCEMENT_TITLE,
		content=announcement_excerpt(post.title),
		related_id=post.id,
	)


class NotificationFanout:
	"""Creates announcement notifications for every other member."""

	def __init__(
		self,
		*,
		repository: repo_module.PostsRepository | None = None,
		page_size: Optional[int] = None,
	) -> None:
		self.repo = repository or repo_module.PostsRepository()
		self.page_size = page_size or settings.fanout_page_size

	async def iter_audience(self, author_id: UUID) -> AsyncIterator[UUID]:
		after: UUID | None = None
		while True:
			page = await self.repo.list_member_ids(exclude=author_id, after=after, limit=self.page_size)
			for member_id in page:
				yield member_id
			if len(page) < self.page_size:
				return
			after = page[-1]

	async def _collect_audience(self, author_id: UUID) -> list[UUID]:
		try:
			return [member_id async for member_id in self.iter_audience(author_id)]
		except Exception as exc:
			raise FanoutError("audience") from exc

	async def _insert(self, drafts: list[models.NotificationDraft]) -> int:
		try:
			return await self.repo.insert_notifications(drafts)
		except Exception as exc:
			raise FanoutError("insert") from exc

	async def fan_out_announcement(self, post: models.Post) -> models.FanoutResult:
		if post.type is not models.PostType.ANNOUNCEMENT:
			return models.FanoutResult(attempted=False)
		try:
			audience = await self._collect_audience(post.author_id)
			drafts = [build_notification(post, member_id) for member_id in audience]
			created = await self._insert(drafts) if drafts else 0
		except FanoutError as exc:
			obs_metrics.fanout_failed(exc.stage)
			_LOG.warning(
				"fanout.announcement_failed",
				extra={
					"post_id": str(post.id),
					"stage": exc.stage,
					"error": str(exc.__cause__ or exc),
				},
			)
			return models.FanoutResult(attempted=True, created=0, error=exc.detail)
		obs_metrics.notifications_fanned_out(created)
		_LOG.info(
			"fanout.announcement_sent",
			extra={"post_id": str(post.id), "recipients": created},
		)
		return models.FanoutResult(attempted=True, created=created)


__all__ = ["NotificationFanout", "announcement_excerpt", "build_notification"]
