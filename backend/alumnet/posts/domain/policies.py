"""Role based visibility rules for post types.

Creation rules decide which types an author may pick; read rules mirror the
row level policy on the ``posts`` table. Unknown or missing roles fall back to
the most restrictive set and never raise.
"""

from __future__ import annotations

from typing import Optional

from alumnet.posts.domain.exceptions import ValidationError
from alumnet.posts.domain.models import PostType, PostTypeOption, Role
from alumnet.settings import settings

_OPTIONS: dict[PostType, PostTypeOption] = {
	PostType.COMMON: PostTypeOption(
		type=PostType.COMMON,
		label="Common",
		description="Visible to every member",
	),
	PostType.STUDENT_ONLY: PostTypeOption(
		type=PostType.STUDENT_ONLY,
		label="Students only",
		description="Visible to students and admins",
	),
	PostType.ALUMNI_ONLY: PostTypeOption(
		type=PostType.ALUMNI_ONLY,
		label="Alumni only",
		description="Visible to alumni and admins",
	),
	PostType.ANNOUNCEMENT: PostTypeOption(
		type=PostType.ANNOUNCEMENT,
		label="Announcement",
		description="Visible to everyone and notifies all members",
	),
}

_CREATE_RULES: dict[Role, tuple[PostType, ...]] = {
	Role.STUDENT: (PostType.COMMON, PostType.STUDENT_ONLY),
	Role.ALUMNI: (PostType.COMMON, PostType.ALUMNI_ONLY),
	Role.ADMIN: (PostType.COMMON, PostType.STUDENT_ONLY, PostType.ALUMNI_ONLY, PostType.ANNOUNCEMENT),
}

_READ_RULES: dict[Role, frozenset[PostType]] = {
	Role.STUDENT: frozenset({PostType.STUDENT_ONLY}),
	Role.ALUMNI: frozenset({PostType.ALUMNI_ONLY}),
	Role.ADMIN: frozenset({PostType.STUDENT_ONLY, PostType.ALUMNI_ONLY}),
}

_PUBLIC_TYPES = frozenset({PostType.COMMON, PostType.ANNOUNCEMENT, PostType.COMMUNITY})


def resolve_role(role: object) -> Optional[Role]:
	"""Map a claim or header value onto ``Role``; anything unrecognised is ``None``."""
	if role is None:
		return None
	value = getattr(role, "value", role)
	try:
		return Role(str(value).strip().lower())
	except ValueError:
		return None


def _allowed_types(role: object) -> tuple[PostType, ...]:
	resolved = resolve_role(role)
	return _CREATE_RULES[resolved] if resolved is not None else (PostType.COMMON,)


def available_types(role: object) -> list[PostTypeOption]:
	"""Return the ordered post types the role may create."""
	return [_OPTIONS[post_type] for post_type in _allowed_types(role)]


def ensure_type_allowed(role: object, post_type: PostType | str) -> PostType:
	try:
		resolved = PostType(post_type)
	except ValueError as exc:
		raise ValidationError("invalid_post_type") from exc
	# community posts come from the skill based flow, open to every role
	if resolved is PostType.COMMUNITY:
		return resolved
	if resolved not in _allowed_types(role):
		raise ValidationError("post_type_not_allowed")
	return resolved


def readable_types(role: object) -> frozenset[PostType]:
	resolved = resolve_role(role)
	extra = _READ_RULES[resolved] if resolved is not None else frozenset()
	return _PUBLIC_TYPES | extra


def can_read(role: object, post_type: PostType | str) -> bool:
	try:
		resolved = PostType(post_type)
	except ValueError:
		return False
	return resolved in readable_types(role)


def normalise_text(title: str | None, content: str | None) -> tuple[str, str]:
	"""Trim title and content, enforcing presence and length limits."""
	clean_title = (title or "").strip()
	clean_content = (content or "").strip()
	if not clean_title:
		raise ValidationError("title_required")
	if not clean_content:
		raise ValidationError("content_required")
	if len(clean_title) > settings.post_title_max:
		raise ValidationError("title_too_long")
	if len(clean_content) > settings.post_content_max:
		raise ValidationError("content_too_long")
	return clean_title, clean_content


def normalise_skills(post_type: PostType, skills: object) -> Optional[list[str]]:
	"""Keep trimmed, de-duplicated skill tags for community posts only."""
	if post_type is not PostType.COMMUNITY or not skills:
		return None
	if isinstance(skills, str):
		skills = skills.split(",")
	seen: list[str] = []
	for raw in skills:  # type: ignore[union-attr]
		tag = str(raw).strip()
		if tag and tag not in seen:
			seen.append(tag)
	return seen or None
