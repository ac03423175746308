"""Post routes: type options, multipart submission, feed and edits."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from alumnet.infra.auth import AuthenticatedUser, get_current_user
from alumnet.obs import metrics as obs_metrics
from alumnet.posts.api._errors import to_http_error
from alumnet.posts.domain import models
from alumnet.posts.domain.exceptions import MediaUploadError
from alumnet.posts.domain.media import PendingFile
from alumnet.posts.domain.services import PostsService
from alumnet.posts.schemas import dto
from alumnet.settings import settings

router = APIRouter(tags=["posts"])
_service = PostsService()


def _post_to_response(post: models.Post) -> dto.PostResponse:
	return dto.PostResponse.model_validate(post.model_dump())


async def _read_uploads(files: Optional[List[UploadFile]], max_bytes: int) -> list[PendingFile]:
	"""Read each part, refusing oversize ones before their body is buffered."""
	pending: list[PendingFile] = []
	for upload in files or []:
		name = upload.filename or "upload"
		if upload.size is not None and upload.size > max_bytes:
			obs_metrics.media_upload("rejected")
			raise MediaUploadError(name, "size_out_of_bounds")
		data = await upload.read(max_bytes + 1)
		if len(data) > max_bytes:
			obs_metrics.media_upload("rejected")
			raise MediaUploadError(name, "size_out_of_bounds")
		pending.append(
			PendingFile(
				name=name,
				content_type=upload.content_type or "application/octet-stream",
				data=data,
			)
		)
	return pending


@router.get("/posts/types", response_model=dto.PostTypesResponse)
async def list_post_types_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostTypesResponse:
	options = _service.list_available_types(auth_user)
	return dto.PostTypesResponse(
		role=auth_user.role,
		items=[dto.PostTypeOptionResponse(**option.model_dump()) for option in options],
	)


@router.post("/posts", response_model=dto.PostCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
	title: str = Form(default=""),
	content: str = Form(default=""),
	type: str = Form(default=models.PostType.COMMON.value),
	visibility: str = Form(default=models.Visibility.PUBLIC.value),
	target_skills: Optional[List[str]] = Form(default=None),
	media_urls: Optional[List[str]] = Form(default=None),
	files: Optional[List[UploadFile]] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostCreateResponse:
	payload = dto.PostCreateRequest(
		title=title,
		content=content,
		type=type,
		visibility=visibility,
		target_skills=target_skills or [],
		media_urls=media_urls or [],
	)
	try:
		pending = await _read_uploads(files, settings.media_max_bytes)
		result = await _service.create_post(auth_user, payload, pending)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return dto.PostCreateResponse(
		post=_post_to_response(result.post),
		fanout=dto.FanoutSummary(
			attempted=result.fanout.attempted,
			created=result.fanout.created,
			error=result.fanout.error,
		),
	)


@router.get("/posts", response_model=dto.PostListResponse)
async def list_posts_endpoint(
	limit: int = Query(default=20, ge=1, le=50),
	cursor: str | None = Query(default=None),
	post_type: str | None = Query(default=None, alias="type"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostListResponse:
	try:
		items, next_cursor = await _service.list_posts(auth_user, limit=limit, cursor=cursor, post_type=post_type)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return dto.PostListResponse(items=[_post_to_response(item) for item in items], next_cursor=next_cursor)


@router.get("/posts/{post_id}", response_model=dto.PostResponse)
async def get_post_endpoint(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostResponse:
	try:
		post = await _service.get_post(auth_user, post_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return _post_to_response(post)


@router.patch("/posts/{post_id}", response_model=dto.PostResponse)
async def update_post_endpoint(
	post_id: UUID,
	payload: dto.PostUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.PostResponse:
	try:
		post = await _service.update_post(auth_user, post_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return _post_to_response(post)


__all__ = ["router"]
