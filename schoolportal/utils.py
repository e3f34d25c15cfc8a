"""Utility functions for the school portal data layer."""

import asyncio
import mimetypes
import secrets
import string
import time
from typing import Optional
from urllib.parse import unquote, urlparse

from .const import RESOURCE_TYPE_DOCUMENT, RESOURCE_TYPE_IMAGE

_KEY_ALPHABET = string.ascii_lowercase + string.digits
_KEY_SUFFIX_LENGTH = 11
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def file_extension(file_name: str) -> str:
	"""Return the extension of a file name without the dot, or an empty string."""
	base = file_name.rsplit("/", 1)[-1]
	if "." not in base:
		return ""
	return base.rsplit(".", 1)[-1]


def generate_storage_key(file_name: str, now_ms: Optional[int] = None) -> str:
	"""Build a collision-resistant blob key from the time and a random suffix.
	
	Keeps the uploaded file's extension.
	"""
	if now_ms is None:
		now_ms = int(time.time() * 1000)
	suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(_KEY_SUFFIX_LENGTH))
	ext = file_extension(file_name)
	key = f"{now_ms}-{suffix}"
	return f"{key}.{ext}" if ext else key


def blob_key_from_url(file_url: Optional[str]) -> Optional[str]:
	"""Return the blob key (final path segment) of a public URL."""
	if not file_url:
		return None
	path = urlparse(file_url).path
	key = unquote(path.rstrip("/").rsplit("/", 1)[-1]) if path else ""
	return key or None


def guess_content_type(file_name: str) -> str:
	content_type, _ = mimetypes.guess_type(file_name)
	return content_type or DEFAULT_CONTENT_TYPE


def resource_type_for(content_type: Optional[str]) -> str:
	"""Images display inline; everything else is treated as a document."""
	if content_type and content_type.startswith("image/"):
		return RESOURCE_TYPE_IMAGE
	return RESOURCE_TYPE_DOCUMENT


async def async_read_file(path: str) -> bytes:
	"""Read a file off the event loop."""
	
	def _read() -> bytes:
		with open(path, "rb") as f:
			return f.read()
	
	return await asyncio.to_thread(_read)
