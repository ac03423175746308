"""Assigns every request an id, reusing a sane client supplied ``X-Request-Id``."""

from __future__ import annotations

import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from alumnet.api.request_id import REQUEST_ID_ATTR, REQUEST_ID_HEADER

_ACCEPTED = re.compile(r"^[A-Za-z0-9._:-]{8,128}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		incoming = request.headers.get(REQUEST_ID_HEADER, "")
		rid = incoming if _ACCEPTED.match(incoming) else uuid.uuid4().hex
		setattr(request.state, REQUEST_ID_ATTR, rid)
		response = await call_next(request)
		response.headers.setdefault(REQUEST_ID_HEADER, rid)
		return response
