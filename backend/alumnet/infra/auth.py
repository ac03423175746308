"""Caller identity for FastAPI endpoints.

A bearer access token is always honoured. ``X-User-Id``/``X-User-Role`` headers
stand in for a token only in development.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidTokenError

from alumnet.infra import jwt as jwt_helper
from alumnet.settings import settings

KNOWN_ROLES = ("student", "alumni", "admin")


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	role: Optional[str] = None
	display_name: Optional[str] = None


_bearer = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
	return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def _normalise_role(value: object) -> Optional[str]:
	"""First recognised role in a claim or header; ``None`` when nothing matches."""
	if isinstance(value, str):
		candidates: list[str] = value.split(",")
	elif isinstance(value, (list, tuple)):
		candidates = [str(item) for item in value]
	else:
		return None
	return next((role for role in (item.strip().lower() for item in candidates) if role in KNOWN_ROLES), None)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	try:
		claims = jwt_helper.decode_access(token)
	except InvalidTokenError as exc:
		raise _unauthorized() from exc
	return AuthenticatedUser(id=claims.sub, role=_normalise_role(claims.role), display_name=claims.name)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> AuthenticatedUser:
	if credentials is not None and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	if x_user_id and settings.is_dev():
		return AuthenticatedUser(id=x_user_id.strip(), role=_normalise_role(x_user_role))
	raise _unauthorized()
