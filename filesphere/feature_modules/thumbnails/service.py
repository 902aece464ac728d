from __future__ import annotations
import asyncio
import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from .config import ThumbnailConfig as Cfg

log = logging.getLogger(__name__)

MEDIA_TYPE = "image/jpeg"

_LABEL_COLORS = {
    "image": (120, 190, 255),
    "video": (255, 150, 110),
    "text": (170, 230, 140),
    "binary": (200, 200, 200),
}


class ThumbnailError(Exception):
    """Raised when no thumbnail (not even the fallback tile) could be produced."""


class ThumbnailGenerator:
    def __init__(
        self,
        size: Optional[int] = None,
        quality: Optional[int] = None,
        background: Optional[Tuple[int, int, int]] = None,
    ) -> None:
        self.size = size or Cfg.size()
        self.quality = quality or Cfg.quality()
        self.background = background or Cfg.background()

    async def generate(self, path: str, file_type: str) -> bytes:
        return await asyncio.to_thread(self.generate_sync, path, file_type)

    def generate_sync(self, path: str, file_type: str) -> bytes:
        if file_type == "image":
            try:
                return self._image_thumbnail(path)
            except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
                # svg/ico/corrupt files land here; serve the type tile instead
                log.info("thumbnails: %s not decodable (%s); using icon", path, e)
        try:
            return self._icon_thumbnail(file_type)
        except Exception as e:
            raise ThumbnailError(f"thumbnail failed for {path}: {e}") from e

    def _image_thumbnail(self, path: str) -> bytes:
        with Image.open(path) as im:
            im = ImageOps.exif_transpose(im)
            # fit inside size x size, never enlarge
            im.thumbnail((self.size, self.size))
            if im.mode != "RGB":
                im = im.convert("RGB")
            return self._encode(im)

    def _icon_thumbnail(self, file_type: str) -> bytes:
        im = Image.new("RGB", (self.size, self.size), self.background)
        draw = ImageDraw.Draw(im)
        label = (file_type or "binary").upper()
        color = _LABEL_COLORS.get(file_type, _LABEL_COLORS["binary"])
        left, top, right, bottom = draw.textbbox((0, 0), label)
        x = (self.size - (right - left)) / 2
        y = (self.size - (bottom - top)) / 2
        draw.text((x, y), label, fill=color)
        return self._encode(im)

    def _encode(self, im: Image.Image) -> bytes:
        buf = io.BytesIO()
        im.save(buf, format="JPEG", quality=self.quality)
        return buf.getvalue()
