"""
Product image pipeline.

Source images are run through background removal, resized to a 500px wide
PNG and uploaded to Supabase storage so Shopify can ingest them from a stable
public URL. Each stage degrades instead of failing the product: if background
removal fails the original is resized and uploaded, and if that fails too
the untouched source URL is handed to Shopify.
"""

import base64
import binascii
import io
import logging
import re
import uuid
from typing import Optional

import httpx
from PIL import Image

from merchant_app.core.config import Settings, get_settings
from merchant_app.core.exceptions import ImageProcessingError

logger = logging.getLogger(__name__)

REMOVE_BG_URL = "https://api.remove.bg/v1.0/removebg"
TARGET_WIDTH = 500
DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)


def resize_to_png(data: bytes, width: int = TARGET_WIDTH) -> bytes:
    """Resize image bytes to ``width`` pixels wide (aspect kept) and encode as PNG."""
    try:
        image = Image.open(io.BytesIO(data))
        image = image.convert("RGBA")
    except Exception as exc:
        raise ImageProcessingError(f"Unreadable image data: {exc}") from exc

    src_w, src_h = image.size
    height = max(1, int(round(src_h * (width / src_w))))
    resized = image.resize((width, height), Image.LANCZOS)

    buf = io.BytesIO()
    resized.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def decode_data_url(data_url: str) -> bytes:
    match = DATA_URL_PATTERN.match(data_url or "")
    if not match:
        raise ImageProcessingError("Not a base64 data URL")
    try:
        return base64.b64decode(match.group("data"))
    except (binascii.Error, ValueError) as exc:
        raise ImageProcessingError(f"Invalid base64 image: {exc}") from exc


class ImagePipeline:
    def __init__(self, settings: Optional[Settings] = None, timeout: float = 30.0):
        self.settings = settings or get_settings()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def process(self, source_url: str) -> str:
        """Best-effort processed URL for ``source_url``; never raises."""
        try:
            cutout = await self.remove_background(source_url)
            return await self.upload_png(resize_to_png(cutout))
        except Exception as exc:
            logger.warning("Background removal pipeline failed for %s: %s", source_url, exc)

        return await self.rehost(source_url)

    async def rehost(self, source_url: str) -> str:
        """Download, resize and upload ``source_url``; fall back to the URL itself."""
        try:
            original = await self.download(source_url)
            return await self.upload_png(resize_to_png(original))
        except Exception as exc:
            logger.warning("Direct resize/upload failed for %s, using source URL: %s", source_url, exc)
            return source_url

    async def from_data_url(self, data_url: str) -> Optional[str]:
        try:
            return await self.upload_png(resize_to_png(decode_data_url(data_url)))
        except Exception as exc:
            logger.error("Could not upload inline image: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    async def download(self, url: str) -> bytes:
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            response = await client.get(url)
        if response.status_code != 200:
            raise ImageProcessingError(f"Download of {url} failed with status {response.status_code}")
        return response.content

    async def remove_background(self, url: str) -> bytes:
        if not self.settings.REMOVE_BG_API_KEY:
            raise ImageProcessingError("REMOVE_BG_API_KEY is not configured")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                REMOVE_BG_URL,
                headers={"X-Api-Key": self.settings.REMOVE_BG_API_KEY},
                data={"image_url": url, "size": "auto", "format": "png"},
            )
        if response.status_code != 200:
            raise ImageProcessingError(f"remove.bg returned {response.status_code}: {response.text[:200]}")
        return response.content

    async def upload_png(self, data: bytes) -> str:
        settings = self.settings
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
            raise ImageProcessingError("Supabase storage is not configured")

        path = f"products/{uuid.uuid4().hex}.png"
        base = settings.SUPABASE_URL.rstrip("/")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{base}/storage/v1/object/{settings.SUPABASE_BUCKET}/{path}",
                headers={
                    "Authorization": f"Bearer {settings.SUPABASE_SERVICE_KEY}",
                    "apikey": settings.SUPABASE_SERVICE_KEY,
                    "Content-Type": "image/png",
                    "x-upsert": "true",
                },
                content=data,
            )
        if response.status_code not in (200, 201):
            raise ImageProcessingError(f"Storage upload failed with {response.status_code}: {response.text[:200]}")
        return f"{base}/storage/v1/object/public/{settings.SUPABASE_BUCKET}/{path}"
