"""HS256 access token helpers.

Tokens are minted by the identity service with the shared secret; this
service verifies them and reads the member id (``sub``) and role claims.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

import jwt
from jwt import InvalidTokenError

from alumnet.settings import settings

ISSUER = "alumnet-identity"
AUDIENCE = "alumnet-api"
ALGORITHM = "HS256"
LEEWAY_SECONDS = 5


@dataclass(slots=True, frozen=True)
class AccessClaims:
	sub: str
	role: Any = None
	name: Optional[str] = None


def encode_access(payload: dict[str, object], *, ttl_seconds: int = 3600) -> str:
	"""Sign ``payload`` with issuer, audience and expiry filled in."""
	issued_at = int(time.time())
	claims: dict[str, Any] = {
		"iss": ISSUER,
		"aud": AUDIENCE,
		"iat": issued_at,
		"exp": issued_at + ttl_seconds,
		**payload,
	}
	return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access(token: str) -> AccessClaims:
	"""Verify ``token`` and return its claims; raises ``InvalidTokenError`` subclasses."""
	raw = jwt.decode(
		token,
		settings.secret_key,
		algorithms=[ALGORITHM],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=LEEWAY_SECONDS,
		options={"require": ["exp", "iat", "iss", "aud", "sub"]},
	)
	sub = str(raw.get("sub") or "").strip()
	if not sub:
		raise InvalidTokenError("missing_claim:sub")
	name = raw.get("name") or raw.get("display_name")
	return AccessClaims(
		sub=sub,
		role=raw.get("role") or raw.get("roles"),
		name=str(name) if name is not None else None,
	)
