"""Error translation helpers for the posts API."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from alumnet.posts.domain import exceptions

_LOG = logging.getLogger(__name__)


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors.

	Anything outside the domain hierarchy is logged and answered as an opaque
	500 so store messages never reach the client.
	"""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, exceptions.PostError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	_LOG.error("posts.unhandled_error", exc_info=exc, extra={"error_type": type(exc).__name__})
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal_error")
