from __future__ import annotations

from uuid import UUID, uuid4

import pytest

from alumnet.infra.auth import AuthenticatedUser
from alumnet.posts.domain import models
from alumnet.posts.domain.exceptions import (
	ForbiddenError,
	MediaUploadError,
	NotFoundError,
	PersistenceError,
	ValidationError,
)
from alumnet.posts.domain.fanout import NotificationFanout
from alumnet.posts.domain.media import MediaNormalizer, PendingFile
from alumnet.posts.domain.services import PostsService
from alumnet.posts.schemas import dto


def _user(role: str | None = "student") -> AuthenticatedUser:
	return AuthenticatedUser(id=str(uuid4()), role=role)


def _service(repo, store) -> PostsService:
	return PostsService(repository=repo, media=MediaNormalizer(store))


@pytest.mark.asyncio
async def test_create_common_post_without_media(fake_repo, fake_store):
	user = _user("student")
	payload = dto.PostCreateRequest(
		title="  Study group  ",
		content=" Tonight at 7 ",
		type="common",
		target_skills=["python"],
	)

	result = await _service(fake_repo, fake_store).create_post(user, payload)

	post = result.post
	assert post.author_id == UUID(user.id)
	assert post.title == "Study group"
	assert post.content == "Tonight at 7"
	assert post.media_urls is None
	assert post.media_type is models.MediaType.TEXT
	assert post.target_skills is None
	assert post.visibility is models.Visibility.PUBLIC
	assert result.fanout == models.FanoutResult(attempted=False, created=0, error=None)
	assert "list_member_ids" not in fake_repo.calls


@pytest.mark.asyncio
async def test_create_community_post_keeps_skills(fake_repo, fake_store):
	payload = dto.PostCreateRequest(
		title="Pairing",
		content="Anyone up for SQL?",
		type="community",
		target_skills=["sql", " sql ", "postgres"],
	)
	result = await _service(fake_repo, fake_store).create_post(_user("alumni"), payload)
	assert result.post.type is models.PostType.COMMUNITY
	assert result.post.target_skills == ["sql", "postgres"]


@pytest.mark.asyncio
async def test_create_with_mixed_media(fake_repo, fake_store):
	files = [
		PendingFile(name="a.png", content_type="image/png", data=b"1"),
		PendingFile(name="b.png", content_type="image/png", data=b"2"),
		PendingFile(name="c.mp4", content_type="video/mp4", data=b"3"),
	]
	payload = dto.PostCreateRequest(title="Trip", content="Photos and a clip")
	result = await _service(fake_repo, fake_store).create_post(_user(), payload, files)
	assert result.post.media_type is models.MediaType.MIXED
	assert len(result.post.media_urls) == 3


@pytest.mark.asyncio
async def test_student_announcement_rejected_before_persistence(fake_repo, fake_store):
	payload = dto.PostCreateRequest(title="Hi", content="All", type="announcement")
	with pytest.raises(ValidationError) as exc:
		await _service(fake_repo, fake_store).create_post(_user("student"), payload)
	assert exc.value.detail == "post_type_not_allowed"
	assert fake_repo.calls == []
	assert fake_store.calls == []


@pytest.mark.asyncio
async def test_empty_content_fails_before_any_upload(fake_repo, fake_store):
	files = [PendingFile(name="a.png", content_type="image/png", data=b"1")]
	payload = dto.PostCreateRequest(title="Hello", content="   ")
	with pytest.raises(ValidationError) as exc:
		await _service(fake_repo, fake_store).create_post(_user(), payload, files)
	assert exc.value.detail == "content_required"
	assert fake_store.calls == []
	assert fake_repo.calls == []


@pytest.mark.asyncio
async def test_invalid_visibility_rejected(fake_repo, fake_store):
	payload = dto.PostCreateRequest(title="Hello", content="World", visibility="everyone")
	with pytest.raises(ValidationError) as exc:
		await _service(fake_repo, fake_store).create_post(_user(), payload)
	assert exc.value.detail == "invalid_visibility"


@pytest.mark.asyncio
async def test_media_failure_aborts_before_insert(fake_repo, store_factory):
	store = store_factory(fail_on=[".mp4"])
	files = [PendingFile(name="talk.mp4", content_type="video/mp4", data=b"v")]
	payload = dto.PostCreateRequest(title="Talk", content="Recording")
	with pytest.raises(MediaUploadError) as exc:
		await _service(fake_repo, store).create_post(_user(), payload, files)
	assert exc.value.detail == "media_upload_failed:talk.mp4"
	assert "create_post" not in fake_repo.calls


@pytest.mark.asyncio
async def test_insert_failure_raises_persistence_error_without_fanout(repo_factory, fake_store):
	repo = repo_factory(members=[uuid4(), uuid4()])
	repo.fail_create = RuntimeError("insert or update on table posts violates foreign key")
	payload = dto.PostCreateRequest(title="News", content="Body", type="announcement")
	with pytest.raises(PersistenceError) as exc:
		await _service(repo, fake_store).create_post(_user("admin"), payload)
	assert "violates foreign key" in exc.value.detail
	assert exc.value.status_code == 502
	assert "list_member_ids" not in repo.calls
	assert repo.notifications == []


@pytest.mark.asyncio
async def test_admin_announcement_fans_out(repo_factory, fake_store):
	admin = _user("admin")
	others = [uuid4() for _ in range(3)]
	repo = repo_factory(members=[UUID(admin.id), *others])
	payload = dto.PostCreateRequest(title="Career fair", content="Friday in the main hall", type="announcement")

	result = await _service(repo, fake_store).create_post(admin, payload)

	assert result.fanout.attempted is True
	assert result.fanout.created == 3
	assert {item.user_id for item in repo.notifications} == set(others)
	assert all(item.related_id == result.post.id for item in repo.notifications)


@pytest.mark.asyncio
async def test_fanout_failure_does_not_fail_submission(repo_factory, fake_store):
	repo = repo_factory(members=[uuid4()])
	repo.fail_insert = RuntimeError("connection reset")
	payload = dto.PostCreateRequest(title="Heads up", content="Maintenance", type="announcement")

	result = await _service(repo, fake_store).create_post(_user("admin"), payload)

	assert result.post.id in repo.posts
	assert result.fanout.attempted is True
	assert result.fanout.created == 0
	assert result.fanout.error == "fanout_failed:insert"


@pytest.mark.asyncio
async def test_non_announcement_posts_create_no_notifications(repo_factory, fake_store):
	repo = repo_factory(members=[uuid4(), uuid4()])
	service = _service(repo, fake_store)
	admin = _user("admin")
	for post_type in ("common", "student_only", "alumni_only", "community"):
		payload = dto.PostCreateRequest(title="t", content="c", type=post_type)
		result = await service.create_post(admin, payload)
		assert result.fanout.attempted is False
	assert repo.notifications == []


async def _seed(service: PostsService, user: AuthenticatedUser, **fields) -> models.Post:
	files = fields.pop("files", ())
	payload = dto.PostCreateRequest(**{"title": "Original", "content": "Body", **fields})
	return (await service.create_post(user, payload, files)).post


@pytest.mark.asyncio
async def test_update_keeps_immutable_fields(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	author = _user("alumni")
	original = await _seed(
		service,
		author,
		files=[PendingFile(name="a.png", content_type="image/png", data=b"1")],
	)

	updated = await service.update_post(
		author,
		original.id,
		dto.PostUpdateRequest(title=" New title ", content="New body", type="alumni_only"),
	)

	assert updated.title == "New title"
	assert updated.content == "New body"
	assert updated.type is models.PostType.ALUMNI_ONLY
	assert updated.author_id == original.author_id
	assert updated.created_at == original.created_at
	assert updated.media_urls == original.media_urls
	assert updated.media_type == original.media_type
	assert updated.updated_at > original.updated_at


@pytest.mark.asyncio
async def test_update_partial_payload_keeps_current_values(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	author = _user("student")
	original = await _seed(service, author, type="student_only")
	updated = await service.update_post(author, original.id, dto.PostUpdateRequest(content="Edited"))
	assert updated.title == "Original"
	assert updated.type is models.PostType.STUDENT_ONLY
	assert updated.content == "Edited"


@pytest.mark.asyncio
async def test_update_by_non_author_forbidden(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	post = await _seed(service, _user("student"))
	with pytest.raises(ForbiddenError) as exc:
		await service.update_post(_user("admin"), post.id, dto.PostUpdateRequest(title="Hijack"))
	assert exc.value.detail == "not_author"


@pytest.mark.asyncio
async def test_update_unknown_post(fake_repo, fake_store):
	with pytest.raises(NotFoundError):
		await _service(fake_repo, fake_store).update_post(_user(), uuid4(), dto.PostUpdateRequest(title="x"))


@pytest.mark.asyncio
async def test_update_lookup_failure_is_persistence_error(fake_repo, fake_store, monkeypatch):
	async def broken_get(post_id):
		raise ConnectionError("connection refused")

	monkeypatch.setattr(fake_repo, "get_post", broken_get)
	with pytest.raises(PersistenceError) as exc:
		await _service(fake_repo, fake_store).update_post(_user(), uuid4(), dto.PostUpdateRequest(title="x"))
	assert exc.value.detail == "connection refused"
	assert "update_post" not in fake_repo.calls


@pytest.mark.asyncio
async def test_update_revalidates_type_for_role(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	author = _user("student")
	post = await _seed(service, author)
	with pytest.raises(ValidationError):
		await service.update_post(author, post.id, dto.PostUpdateRequest(type="announcement"))


@pytest.mark.asyncio
async def test_update_to_announcement_never_fans_out(repo_factory, fake_store):
	admin = _user("admin")
	repo = repo_factory(members=[uuid4(), uuid4()])
	service = _service(repo, fake_store)
	post = await _seed(service, admin)
	updated = await service.update_post(admin, post.id, dto.PostUpdateRequest(type="announcement"))
	assert updated.type is models.PostType.ANNOUNCEMENT
	assert repo.notifications == []
	assert "list_member_ids" not in repo.calls


@pytest.mark.asyncio
async def test_update_cannot_move_post_out_of_community(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	author = _user("alumni")
	post = await _seed(service, author, type="community", target_skills=["ml"])
	with pytest.raises(ValidationError) as exc:
		await service.update_post(author, post.id, dto.PostUpdateRequest(type="common"))
	assert exc.value.detail == "community_type_locked"


@pytest.mark.asyncio
async def test_get_post_hides_unreadable_types(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	alumni = _user("alumni")
	post = await _seed(service, alumni, type="alumni_only")

	assert (await service.get_post(alumni, post.id)).id == post.id
	assert (await service.get_post(_user("admin"), post.id)).id == post.id
	with pytest.raises(NotFoundError):
		await service.get_post(_user("student"), post.id)


@pytest.mark.asyncio
async def test_list_posts_filters_by_role(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	admin = _user("admin")
	for post_type in ("common", "student_only", "alumni_only", "announcement"):
		await _seed(service, admin, type=post_type)

	items, _ = await service.list_posts(_user("student"))
	assert {item.type for item in items} == {
		models.PostType.COMMON,
		models.PostType.STUDENT_ONLY,
		models.PostType.ANNOUNCEMENT,
	}
	assert [item.created_at for item in items] == sorted((item.created_at for item in items), reverse=True)

	items, cursor = await service.list_posts(_user("student"), post_type="alumni_only")
	assert items == []
	assert cursor is None

	items, _ = await service.list_posts(admin, post_type="alumni_only")
	assert [item.type for item in items] == [models.PostType.ALUMNI_ONLY]


@pytest.mark.asyncio
async def test_list_posts_rejects_bad_cursor(fake_repo, fake_store):
	with pytest.raises(ValidationError):
		await _service(fake_repo, fake_store).list_posts(_user(), cursor="not-a-cursor")


def test_list_available_types_uses_role(fake_repo, fake_store):
	options = _service(fake_repo, fake_store).list_available_types(_user("alumni"))
	assert [option.type.value for option in options] == ["common", "alumni_only"]


def test_service_builds_default_fanout(fake_repo, fake_store):
	service = _service(fake_repo, fake_store)
	assert isinstance(service.fanout, NotificationFanout)
	assert service.fanout.repo is fake_repo
