"""Blob storage backends for post attachments.

``HttpBlobStore`` talks to a storage REST endpoint (bucket scoped, bearer
authenticated); ``LocalBlobStore`` writes under a local directory that the dev
server mounts as static files.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

import httpx

from alumnet.settings import settings

_LOG = logging.getLogger(__name__)


class StorageError(RuntimeError):
	"""Raised when the blob store rejects or fails an upload."""


class BlobStore(Protocol):
	async def upload(self, path: str, data: bytes, content_type: str) -> str:
		...

	def public_url(self, path: str) -> str:
		...


class HttpBlobStore:
	"""Uploads objects with ``POST /storage/v1/object/{bucket}/{path}``."""

	def __init__(
		self,
		*,
		base_url: str,
		bucket: str,
		service_key: Optional[str] = None,
		timeout: float = 30.0,
		client: Optional[httpx.AsyncClient] = None,
	) -> None:
		self.base_url = base_url.rstrip("/")
		self.bucket = bucket
		self._service_key = service_key
		self._client = client or httpx.AsyncClient(timeout=timeout)

	def _headers(self, content_type: str) -> dict[str, str]:
		headers = {"Content-Type": content_type, "x-upsert": "false"}
		if self._service_key:
			headers["Authorization"] = f"Bearer {self._service_key}"
			headers["apikey"] = self._service_key
		return headers

	async def upload(self, path: str, data: bytes, content_type: str) -> str:
		url = f"{self.base_url}/storage/v1/object/{self.bucket}/{path}"
		try:
			response = await self._client.post(url, content=data, headers=self._headers(content_type))
		except httpx.HTTPError as exc:
			raise StorageError(f"transport_error:{exc.__class__.__name__}") from exc
		if response.status_code >= 400:
			_LOG.warning(
				"storage.upload_rejected",
				extra={"path": path, "status": response.status_code},
			)
			raise StorageError(f"upload_rejected:{response.status_code}")
		return path

	def public_url(self, path: str) -> str:
		return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

	async def aclose(self) -> None:
		await self._client.aclose()


class LocalBlobStore:
	"""Development store writing files under ``root``."""

	def __init__(self, *, root: str | Path, public_base_url: str) -> None:
		self.root = Path(root)
		self.public_base_url = public_base_url.rstrip("/")

	async def upload(self, path: str, data: bytes, content_type: str) -> str:
		target = self.root / path
		try:
			target.parent.mkdir(parents=True, exist_ok=True)
			target.write_bytes(data)
		except OSError as exc:
			raise StorageError(f"write_failed:{exc.strerror or exc}") from exc
		return path

	def public_url(self, path: str) -> str:
		return f"{self.public_base_url}/{path}"

	async def aclose(self) -> None:
		return None


_store: Optional[BlobStore] = None


def build_blob_store() -> BlobStore:
	if settings.media_backend == "local":
		return LocalBlobStore(root=settings.media_upload_root, public_base_url=settings.media_public_base_url)
	return HttpBlobStore(
		base_url=settings.storage_url,
		bucket=settings.media_bucket,
		service_key=settings.storage_service_key,
		timeout=settings.storage_timeout_seconds,
	)


def get_blob_store() -> BlobStore:
	global _store
	if _store is None:
		_store = build_blob_store()
	return _store


def set_blob_store(store: Optional[BlobStore]) -> None:
	global _store
	_store = store


async def close_blob_store() -> None:
	global _store
	if _store is not None:
		closer = getattr(_store, "aclose", None)
		if closer is not None:
			await closer()
	_store = None
