"""Service layer for post publication."""

from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from alumnet.infra.auth import AuthenticatedUser
from alumnet.obs import metrics as obs_metrics
from alumnet.posts.domain import models, policies, repo as repo_module
from alumnet.posts.domain.exceptions import (
	ForbiddenError,
	NotFoundError,
	PersistenceError,
	PostError,
	ValidationError,
)
from alumnet.posts.domain.fanout import NotificationFanout
from alumnet.posts.domain.media import MediaNormalizer, PendingFile
from alumnet.posts.schemas import dto

_LOG = logging.getLogger(__name__)

_MAX_PAGE = 50


def _user_uuid(user: AuthenticatedUser) -> UUID:
	try:
		return UUID(str(user.id))
	except ValueError as exc:
		raise ForbiddenError("invalid_user") from exc


def _parse_visibility(value: str | None) -> models.Visibility:
	try:
		return models.Visibility((value or models.Visibility.PUBLIC.value).strip().lower())
	except ValueError as exc:
		raise ValidationError("invalid_visibility") from exc


class PostsService:
	"""Validates, stores and announces posts."""

	def __init__(
		self,
		repository: repo_module.PostsRepository | None = None,
		*,
		media: MediaNormalizer | None = None,
		fanout: NotificationFanout | None = None,
	) -> None:
		self.repo = repository or repo_module.PostsRepository()
		self.media = media or MediaNormalizer()
		self.fanout = fanout or NotificationFanout(repository=self.repo)

	def list_available_types(self, user: AuthenticatedUser) -> list[models.PostTypeOption]:
		return policies.available_types(user.role)

	async def create_post(
		self,
		user: AuthenticatedUser,
		payload: dto.PostCreateRequest,
		files: Sequence[PendingFile] = (),
	) -> models.PostCreateResult:
		"""Publish a post and, for announcements, notify every other member.

		Text and type checks run before any upload or insert. The fan-out result
		is reported alongside the post and never fails the call.
		"""
		title, content = policies.normalise_text(payload.title, payload.content)
		post_type = policies.ensure_type_allowed(user.role, payload.type)
		visibility = _parse_visibility(payload.visibility)
		author_id = _user_uuid(user)
		target_skills = policies.normalise_skills(post_type, payload.target_skills)

		media = await self.media.normalize(author_id, files, payload.media_urls)

		try:
			post = await self.repo.create_post(
				author_id=author_id,
				title=title,
				content=content,
				post_type=post_type,
				media_urls=media.media_urls,
				media_type=media.media_type,
				target_skills=target_skills,
				visibility=visibility,
			)
		except PostError:
			raise
		except Exception as exc:
			_LOG.error("posts.create_failed", extra={"author_id": str(author_id), "error": str(exc)})
			raise PersistenceError(str(exc) or "post_insert_failed") from exc

		obs_metrics.inc_post_created(post.type.value)
		_LOG.info(
			"posts.created",
			extra={"post_id": str(post.id), "type": post.type.value, "media_type": post.media_type.value},
		)

		fanout = models.FanoutResult(attempted=False)
		if post.type is models.PostType.ANNOUNCEMENT:
			fanout = await self.fanout.fan_out_announcement(post)
		return models.PostCreateResult(post=post, fanout=fanout)

	async def update_post(
		self,
		user: AuthenticatedUser,
		post_id: UUID,
		payload: dto.PostUpdateRequest,
	) -> models.Post:
		try:
			existing = await self.repo.get_post(post_id)
		except PostError:
			raise
		except Exception as exc:
			raise PersistenceError(str(exc) or "post_lookup_failed") from exc
		if existing is None:
			raise NotFoundError("post_not_found")
		if existing.author_id != _user_uuid(user):
			raise ForbiddenError("not_author")

		title, content = policies.normalise_text(
			payload.title if payload.title is not None else existing.title,
			payload.content if payload.content is not None else existing.content,
		)
		post_type = policies.ensure_type_allowed(
			user.role,
			payload.type if payload.type is not None else existing.type,
		)
		# skills live only on community posts and updates never touch them
		if post_type is not existing.type and models.PostType.COMMUNITY in (post_type, existing.type):
			raise ValidationError("community_type_locked")

		try:
			post = await self.repo.update_post(post_id, title=title, content=content, post_type=post_type)
		except PostError:
			raise
		except Exception as exc:
			raise PersistenceError(str(exc) or "post_update_failed") from exc
		obs_metrics.inc_post_updated()
		_LOG.info("posts.updated", extra={"post_id": str(post.id), "type": post.type.value})
		return post

	async def get_post(self, user: AuthenticatedUser, post_id: UUID) -> models.Post:
		post = await self.repo.get_post(post_id)
		if post is None:
			raise NotFoundError("post_not_found")
		if str(post.author_id) != str(user.id) and not policies.can_read(user.role, post.type):
			raise NotFoundError("post_not_found")
		return post

	async def list_posts(
		self,
		user: AuthenticatedUser,
		*,
		limit: int = 20,
		cursor: Optional[str] = None,
		post_type: Optional[str] = None,
	) -> tuple[list[models.Post], Optional[str]]:
		limit = max(1, min(limit, _MAX_PAGE))
		types = set(policies.readable_types(user.role))
		if post_type:
			try:
				requested = models.PostType(post_type)
			except ValueError as exc:
				raise ValidationError("invalid_post_type") from exc
			types &= {requested}
		if not types:
			return [], None
		after = repo_module.decode_cursor(cursor) if cursor else None
		ordered = sorted(types, key=lambda item: item.value)
		return await self.repo.list_posts(types=ordered, limit=limit, after=after)


__all__ = ["PostsService"]
