"""Domain models for posts and notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
	STUDENT = "student"
	ALUMNI = "alumni"
	ADMIN = "admin"


class PostType(str, Enum):
	COMMON = "common"
	STUDENT_ONLY = "student_only"
	ALUMNI_ONLY = "alumni_only"
	ANNOUNCEMENT = "announcement"
	COMMUNITY = "community"


class MediaType(str, Enum):
	TEXT = "text"
	IMAGE = "image"
	VIDEO = "video"
	MIXED = "mixed"


class Visibility(str, Enum):
	PUBLIC = "public"
	CONNECTIONS = "connections"
	PRIVATE = "private"


class NotificationType(str, Enum):
	MESSAGE = "message"
	MENTORSHIP = "mentorship"
	ANNOUNCEMENT = "announcement"
	POST = "post"


class Post(BaseModel):
	"""Represents a stored post."""

	id: UUID
	author_id: UUID
	title: str
	content: str
	type: PostType
	media_urls: Optional[list[str]] = None
	media_type: MediaType = MediaType.TEXT
	target_skills: Optional[list[str]] = None
	visibility: Visibility = Visibility.PUBLIC
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class NotificationDraft(BaseModel):
	"""A notification built in memory, not yet persisted."""

	user_id: UUID
	type: NotificationType
	title: str
	content: str
	related_id: Optional[UUID] = None


class Notification(NotificationDraft):
	"""Stored notification destined for a member."""

	id: UUID
	read: bool = False
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class PostTypeOption(BaseModel):
	"""A post type the caller may pick, with its UI label."""

	type: PostType
	label: str
	description: str


@dataclass(slots=True)
class NormalizedMedia:
	media_urls: Optional[list[str]]
	media_type: MediaType


@dataclass(slots=True)
class FanoutResult:
	"""Outcome of the announcement fan-out step.

	``error`` carries the failure code when the step failed; the post itself is
	unaffected either way.
	"""

	attempted: bool = False
	created: int = 0
	error: Optional[str] = None


@dataclass(slots=True)
class PostCreateResult:
	post: Post
	fanout: FanoutResult = field(default_factory=FanoutResult)
