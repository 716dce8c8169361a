"""
Image Storage
=============

Persists rendered and decoded images under the images directory and
builds the URL path they are served from.
"""

from typing import Any, Optional
from datetime import datetime, timezone
from pathlib import Path
import asyncio
import base64
import binascii
import re

from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.exceptions import EncodingError

logger = get_logger(__name__)

DATA_URL_PREFIX = re.compile(r"^data:[^;,]*;base64,", re.IGNORECASE)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


def strip_data_url(data: str) -> str:
    """Remove a leading `data:<mime>;base64,` marker if present."""
    return DATA_URL_PREFIX.sub("", data.strip(), count=1)


def decode_base64(data: str) -> bytes:
    """
    Strictly decode base64 text, accepting an optional data-URL prefix.

    Raises:
        EncodingError: If the payload is empty or not valid base64
    """
    payload = "".join(strip_data_url(data).split())
    if not payload:
        raise EncodingError("Base64 payload is empty")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"Malformed base64 data: {e}") from e


class ImageStore:
    """Writes image files into a single directory."""

    def __init__(self, images_dir: Path, url_prefix: str = "/images") -> None:
        self.images_dir = Path(images_dir)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.logger: Any = logger.bind(component="image_store")

    def file_name_for(self, mime_type: str, file_name: Optional[str] = None) -> str:
        """
        Build the stored file name.

        Caller-supplied names are reduced to their final path component; the
        extension implied by `mime_type` is appended unless already present.
        Without a name, a UTC timestamp is used.
        """
        extension = EXTENSIONS.get(mime_type, "bin")
        if file_name:
            stem = Path(file_name.replace("\\", "/")).name
        else:
            stem = ""
        if not stem or stem in {".", ".."}:
            stem = "image_" + datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        if stem.lower().endswith(f".{extension}"):
            return stem
        return f"{stem}.{extension}"

    def url_for(self, name: str) -> str:
        return f"{self.url_prefix}/{name}"

    async def save(self, data: bytes, mime_type: str, file_name: Optional[str] = None) -> str:
        """
        Write image bytes and return the URL path the file is served from.

        Args:
            data: Image bytes
            mime_type: Image MIME type, selects the file extension
            file_name: Optional caller-supplied name

        Returns:
            URL path such as `/images/chart.png`
        """
        name = self.file_name_for(mime_type, file_name)
        path = self.images_dir / name

        def _write() -> None:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        self.logger.info("Image saved", path=str(path), file_size=len(data))
        return self.url_for(name)
