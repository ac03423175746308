"""Attachment handling for posts.

Files are uploaded to the blob store under ``{author_id}/{ulid}{ext}`` and
replaced by their public URLs. The aggregate ``media_type`` is always derived
from the full attachment set, never patched incrementally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Iterable, Optional, Sequence

import ulid

from alumnet.obs import metrics as obs_metrics
from alumnet.posts.domain.exceptions import MediaUploadError
from alumnet.posts.domain.models import MediaType, NormalizedMedia
from alumnet.posts.infra.storage import BlobStore, get_blob_store
from alumnet.settings import settings

_LOG = logging.getLogger(__name__)

KIND_IMAGE = "image"
KIND_VIDEO = "video"
KIND_DOCUMENT = "document"

_DOCUMENT_MIME_TYPES = {"application/pdf"}

_FALLBACK_EXTENSIONS = {
	"image/jpeg": ".jpg",
	"image/png": ".png",
	"image/gif": ".gif",
	"image/webp": ".webp",
	"video/mp4": ".mp4",
	"video/webm": ".webm",
	"video/quicktime": ".mov",
	"application/pdf": ".pdf",
}


def kind_of(content_type: str | None) -> Optional[str]:
	"""Map a MIME type to an attachment kind, or ``None`` when not accepted."""
	mime = (content_type or "").split(";", 1)[0].strip().lower()
	if mime.startswith("image/"):
		return KIND_IMAGE
	if mime.startswith("video/"):
		return KIND_VIDEO
	if mime in _DOCUMENT_MIME_TYPES:
		return KIND_DOCUMENT
	return None


def classify(kinds: Iterable[str | None]) -> MediaType:
	"""Reduce attachment kinds to the aggregate media type.

	Documents never tip the image/video decision; a set holding only documents
	is reported as ``mixed`` so that ``text`` always means no attachments.
	"""
	has_image = False
	has_video = False
	has_other = False
	for kind in kinds:
		if kind == KIND_IMAGE:
			has_image = True
		elif kind == KIND_VIDEO:
			has_video = True
		else:
			has_other = True
	if (has_image and has_video) or (has_other and not has_image and not has_video):
		return MediaType.MIXED
	if has_video:
		return MediaType.VIDEO
	if has_image:
		return MediaType.IMAGE
	return MediaType.TEXT


@dataclass(slots=True)
class PendingFile:
	"""A file received from the client, held in memory until upload."""

	name: str
	content_type: str
	data: bytes

	@property
	def kind(self) -> Optional[str]:
		return kind_of(self.content_type)

	@property
	def size(self) -> int:
		return len(self.data)


@dataclass(slots=True)
class AttachmentSet:
	files: list[PendingFile] = field(default_factory=list)
	urls: list[str] = field(default_factory=list)

	def add_file(self, item: PendingFile) -> MediaType:
		self.files.append(item)
		return self.media_type

	def remove_file(self, name: str) -> MediaType:
		for index, item in enumerate(self.files):
			if item.name == name:
				del self.files[index]
				break
		return self.media_type

	def add_url(self, url: str) -> MediaType:
		clean = url.strip()
		if clean:
			self.urls.append(clean)
		return self.media_type

	def remove_url(self, url: str) -> MediaType:
		if url in self.urls:
			self.urls.remove(url)
		return self.media_type

	def kinds(self) -> list[Optional[str]]:
		# direct URLs are not sniffed and count as images
		return [item.kind for item in self.files] + [KIND_IMAGE for _ in self.urls]

	@property
	def media_type(self) -> MediaType:
		return classify(self.kinds())

	@property
	def is_empty(self) -> bool:
		return not self.files and not self.urls


def object_key(author_id: object, file_name: str, content_type: str | None = None) -> str:
	ext = PurePath(file_name).suffix.lower()
	if not ext:
		ext = _FALLBACK_EXTENSIONS.get((content_type or "").lower(), "")
	return f"{author_id}/{ulid.new().str}{ext}"


class MediaNormalizer:
	"""Uploads pending files and resolves the stored media fields."""

	def __init__(self, store: Optional[BlobStore] = None, *, max_bytes: Optional[int] = None) -> None:
		self._store = store
		self._max_bytes = max_bytes

	@property
	def store(self) -> BlobStore:
		return self._store if self._store is not None else get_blob_store()

	@property
	def max_bytes(self) -> int:
		return self._max_bytes if self._max_bytes is not None else settings.media_max_bytes

	def _check(self, item: PendingFile) -> None:
		if item.kind is None:
			obs_metrics.media_upload("rejected")
			raise MediaUploadError(item.name, "unsupported_type")
		if item.size == 0 or item.size > self.max_bytes:
			obs_metrics.media_upload("rejected")
			raise MediaUploadError(item.name, "size_out_of_bounds")

	async def normalize(
		self,
		author_id: object,
		files: Sequence[PendingFile] = (),
		urls: Sequence[str] = (),
	) -> NormalizedMedia:
		attachments = AttachmentSet(files=list(files))
		for url in urls:
			attachments.add_url(url)
		if attachments.is_empty:
			return NormalizedMedia(media_urls=None, media_type=MediaType.TEXT)

		for item in attachments.files:
			self._check(item)

		store = self.store
		media_urls: list[str] = []
		for item in attachments.files:
			key = object_key(author_id, item.name, item.content_type)
			try:
				stored = await store.upload(key, item.data, item.content_type)
				media_urls.append(store.public_url(stored))
			except Exception as exc:
				obs_metrics.media_upload("error")
				_LOG.warning(
					"media.upload_failed",
					extra={"file_name": item.name, "key": key, "error": str(exc)},
				)
				raise MediaUploadError(item.name, str(exc)) from exc
			obs_metrics.media_upload("ok")
		media_urls.extend(attachments.urls)
		return NormalizedMedia(media_urls=media_urls, media_type=attachments.media_type)
