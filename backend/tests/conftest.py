import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from alumnet.infra import postgres
from alumnet.main import app
from alumnet.posts.domain import models
from alumnet.posts.domain.exceptions import NotFoundError
from alumnet.posts.infra import storage
from alumnet.settings import settings


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Role headers, which are only
	accepted in dev mode.
	"""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


@pytest.fixture(autouse=True)
def reset_blob_store():
	storage.set_blob_store(None)
	try:
		yield
	finally:
		storage.set_blob_store(None)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client


class FakeBlobStore:
	"""In-memory blob store; ``fail_on`` names paths whose upload raises."""

	def __init__(self, *, fail_on: Iterable[str] = ()) -> None:
		self.objects: dict[str, tuple[bytes, str]] = {}
		self.fail_on = set(fail_on)
		self.calls: list[str] = []

	async def upload(self, path: str, data: bytes, content_type: str) -> str:
		self.calls.append(path)
		if any(path.endswith(suffix) for suffix in self.fail_on):
			raise storage.StorageError("upload_rejected:507")
		self.objects[path] = (data, content_type)
		return path

	def public_url(self, path: str) -> str:
		return f"https://cdn.test/media/{path}"


class FakePostsRepository:
	"""Dict backed stand-in for PostsRepository."""

	def __init__(self, *, members: Sequence[UUID] = ()) -> None:
		self.posts: dict[UUID, models.Post] = {}
		self.members = sorted(members)
		self.notifications: list[models.Notification] = []
		self.calls: list[str] = []
		self.fail_create: Optional[Exception] = None
		self.fail_members: Optional[Exception] = None
		self.fail_insert: Optional[Exception] = None
		self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

	def _tick(self) -> datetime:
		self._clock += timedelta(seconds=1)
		return self._clock

	async def create_post(self, **fields) -> models.Post:
		self.calls.append("create_post")
		if self.fail_create is not None:
			raise self.fail_create
		now = self._tick()
		post = models.Post(
			id=uuid4(),
			author_id=fields["author_id"],
			title=fields["title"],
			content=fields["content"],
			type=fields["post_type"],
			media_urls=list(fields["media_urls"]) if fields["media_urls"] else None,
			media_type=fields["media_type"],
			target_skills=list(fields["target_skills"]) if fields["target_skills"] else None,
			visibility=fields["visibility"],
			created_at=now,
			updated_at=now,
		)
		self.posts[post.id] = post
		return post

	async def get_post(self, post_id) -> models.Post | None:
		self.calls.append("get_post")
		return self.posts.get(UUID(str(post_id)))

	async def update_post(self, post_id, *, title, content, post_type) -> models.Post:
		self.calls.append("update_post")
		current = self.posts.get(UUID(str(post_id)))
		if current is None:
			raise NotFoundError("post_not_found")
		updated = current.model_copy(
			update={"title": title, "content": content, "type": post_type, "updated_at": self._tick()}
		)
		self.posts[updated.id] = updated
		return updated

	async def list_posts(self, *, types, limit, after=None):
		self.calls.append("list_posts")
		allowed = set(types)
		items = sorted(
			(post for post in self.posts.values() if post.type in allowed),
			key=lambda post: (post.created_at, post.id),
			reverse=True,
		)
		if after:
			items = [post for post in items if (post.created_at, post.id) < after]
		return items[:limit], None

	async def list_member_ids(self, *, exclude, after=None, limit):
		self.calls.append("list_member_ids")
		if self.fail_members is not None:
			raise self.fail_members
		ids = [member for member in self.members if member != exclude and (after is None or member > after)]
		return ids[:limit]

	async def insert_notifications(self, drafts) -> int:
		self.calls.append("insert_notifications")
		if self.fail_insert is not None:
			raise self.fail_insert
		for draft in drafts:
			self.notifications.append(
				models.Notification(
					id=uuid4(),
					created_at=self._tick(),
					**draft.model_dump(),
				)
			)
		return len(drafts)

	async def list_notifications(self, user_id, *, limit, after=None):
		self.calls.append("list_notifications")
		items = [item for item in reversed(self.notifications) if item.user_id == user_id]
		return items[:limit], None

	async def mark_notifications_read(self, user_id, *, ids) -> int:
		wanted = set(ids)
		updated = 0
		for index, item in enumerate(self.notifications):
			if item.user_id == user_id and item.id in wanted and not item.read:
				self.notifications[index] = item.model_copy(update={"read": True})
				updated += 1
		return updated

	async def mark_all_read(self, user_id) -> int:
		unread = [item.id for item in self.notifications if item.user_id == user_id and not item.read]
		return await self.mark_notifications_read(user_id, ids=unread)

	async def unread_count(self, user_id) -> int:
		return sum(1 for item in self.notifications if item.user_id == user_id and not item.read)


@pytest.fixture()
def fake_store() -> FakeBlobStore:
	return FakeBlobStore()


@pytest.fixture()
def fake_repo() -> FakePostsRepository:
	return FakePostsRepository()


@pytest.fixture()
def repo_factory():
	return FakePostsRepository


@pytest.fixture()
def store_factory():
	return FakeBlobStore
