"""Pydantic schemas for the posts and notifications API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from alumnet.posts.domain import models


class PostTypeOptionResponse(BaseModel):
	type: models.PostType
	label: str
	description: str


class PostTypesResponse(BaseModel):
	role: Optional[str] = None
	items: List[PostTypeOptionResponse]


class PostCreateRequest(BaseModel):
	"""Text fields of a submission; files travel alongside as multipart parts."""

	title: str = ""
	content: str = ""
	type: str = models.PostType.COMMON.value
	visibility: str = models.Visibility.PUBLIC.value
	target_skills: List[str] = Field(default_factory=list)
	media_urls: List[str] = Field(default_factory=list)


class PostUpdateRequest(BaseModel):
	title: Optional[str] = None
	content: Optional[str] = None
	type: Optional[str] = None


class PostResponse(BaseModel):
	id: UUID
	author_id: UUID
	title: str
	content: str
	type: models.PostType
	media_urls: Optional[List[str]] = None
	media_type: models.MediaType
	target_skills: Optional[List[str]] = None
	visibility: models.Visibility
	created_at: datetime
	updated_at: datetime


class PostListResponse(BaseModel):
	items: List[PostResponse]
	next_cursor: Optional[str] = None


class FanoutSummary(BaseModel):
	attempted: bool
	created: int
	error: Optional[str] = None


class PostCreateResponse(BaseModel):
	post: PostResponse
	fanout: FanoutSummary


class NotificationResponse(BaseModel):
	id: UUID
	user_id: UUID
	type: models.NotificationType
	title: str
	content: str
	read: bool
	related_id: Optional[UUID] = None
	created_at: datetime


class NotificationListResponse(BaseModel):
	items: List[NotificationResponse]
	next_cursor: Optional[str] = None


class NotificationMarkReadRequest(BaseModel):
	ids: List[UUID] = Field(default_factory=list, max_length=500)


class NotificationMarkReadResponse(BaseModel):
	updated: int


class NotificationUnreadResponse(BaseModel):
	count: int
