"""Notification inbox endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from alumnet.infra.auth import AuthenticatedUser, get_current_user
from alumnet.posts.api._errors import to_http_error
from alumnet.posts.domain.notifications_service import NotificationService
from alumnet.posts.schemas import dto

router = APIRouter(tags=["notifications"])
_service = NotificationService()


@router.get("/notifications", response_model=dto.NotificationListResponse)
async def list_notifications_endpoint(
	limit: int = Query(default=20, ge=1, le=50),
	cursor: str | None = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationListResponse:
	try:
		return await _service.list_notifications(auth_user, limit=limit, cursor=cursor)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/notifications/unread", response_model=dto.NotificationUnreadResponse)
async def unread_notifications_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationUnreadResponse:
	try:
		count = await _service.unread_count(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return dto.NotificationUnreadResponse(count=count)


@router.post("/notifications/mark-read", response_model=dto.NotificationMarkReadResponse)
async def mark_notifications_endpoint(
	payload: dto.NotificationMarkReadRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationMarkReadResponse:
	try:
		updated = await _service.mark_read(auth_user, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return dto.NotificationMarkReadResponse(updated=updated)


@router.post("/notifications/mark-all-read", response_model=dto.NotificationMarkReadResponse)
async def mark_all_notifications_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationMarkReadResponse:
	try:
		updated = await _service.mark_all_read(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return dto.NotificationMarkReadResponse(updated=updated)


__all__ = ["router"]
