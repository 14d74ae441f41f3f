"""
Image Reference Resolver

Turns an uploaded menu image into a reference a MenuItem can carry:
    - remote configured: upload to the menu image bucket, return public URL
    - otherwise, or on any upload failure: embed as a base64 data URI

Never raises to the caller.

Author: Khalil Bannouri
Version: 4.0.0
"""

import base64
import logging
import mimetypes
import time
from pathlib import PurePath
from typing import Optional

from app.services.remote.base import BaseRemoteService, RemoteServiceError, remote_ready

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(filename: Optional[str], content_type: Optional[str] = None) -> str:
    if content_type:
        return content_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_CONTENT_TYPE


def to_data_uri(content: bytes, content_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def storage_path(filename: Optional[str]) -> str:
    """<epoch-ms>.<ext>, keeping the original extension when there is one."""
    suffix = PurePath(filename or "").suffix.lstrip(".").lower()
    stem = str(int(time.time() * 1000))
    return f"{stem}.{suffix}" if suffix else stem


class ImageResolver:
    """Upload-or-embed policy for menu images."""

    def __init__(self, remote: Optional[BaseRemoteService], bucket: str = "menu-images"):
        self.remote = remote
        self.bucket = bucket

    async def resolve(
        self,
        filename: Optional[str],
        content: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Get a durable reference for an image file.

        Args:
            filename: Original file name (used for the extension)
            content: Raw file bytes
            content_type: MIME type reported by the client, if any

        Returns:
            str: Public URL, or a data: URI when the upload is not possible
        """
        content_type = guess_content_type(filename, content_type)

        if not remote_ready(self.remote):
            logger.debug("Remote storage not configured, embedding image")
            return to_data_uri(content, content_type)

        path = storage_path(filename)
        try:
            url = await self.remote.upload(self.bucket, path, content, content_type)
        except RemoteServiceError as e:
            logger.error(f"Error uploading image {path}: {e}")
            return to_data_uri(content, content_type)

        logger.info(f"Image uploaded to {self.bucket}/{path}")
        return url
