"""Custom exceptions for post publication and notification fan-out."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - fallback for older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class PostError(Exception):
	"""Base class for post related errors."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "post_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(PostError):
	"""Thrown when a post is missing or not readable by the caller."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ForbiddenError(PostError):
	"""Raised when authorization fails."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class ValidationError(PostError):
	"""Raised before any network call when the submission is malformed."""

	status_code = _HTTP_422
	detail = "validation_error"


class MediaUploadError(PostError):
	"""A single attachment failed to reach blob storage; the submission is aborted."""

	status_code = _HTTP_422
	detail = "media_upload_failed"

	def __init__(self, file_name: str, reason: str | None = None) -> None:
		self.file_name = file_name
		self.reason = reason
		super().__init__(f"media_upload_failed:{file_name}")


class PersistenceError(PostError):
	"""The post insert or update itself failed; carries the store's message."""

	status_code = status.HTTP_502_BAD_GATEWAY
	detail = "persistence_error"


class FanoutError(PostError):
	"""Member listing or notification insert failed after the post was created."""

	detail = "fanout_failed"

	def __init__(self, stage: str, detail: str | None = None) -> None:
		self.stage = stage
		super().__init__(detail or f"fanout_failed:{stage}")
