"""App-wide exception handlers; every error body carries the request id."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from alumnet.api.request_id import get_request_id

_LOG = logging.getLogger(__name__)


def _body(request: Request, detail: object, **extra: object) -> dict[str, object]:
	return {"detail": detail, **extra, "request_id": get_request_id(request)}


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
	"""Validation errors without ``ctx``/``input``, which may hold raw uploads or exceptions."""
	return [{key: value for key, value in error.items() if key not in ("ctx", "input")} for error in exc.errors()]


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		return JSONResponse(
			status_code=exc.status_code,
			content=_body(request, exc.detail),
			headers=getattr(exc, "headers", None),
		)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		return JSONResponse(
			status_code=422,
			content=_body(request, "validation_error", errors=jsonable_errors(exc)),
		)

	@app.exception_handler(Exception)
	async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
		_LOG.exception("http.unhandled_error", extra={"path": request.url.path})
		return JSONResponse(
			status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
			content=_body(request, "internal_error"),
		)
