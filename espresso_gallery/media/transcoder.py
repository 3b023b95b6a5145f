"""Image normalization: fit inside a box, flatten to RGB, progressive JPEG."""

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from espresso_gallery.errors import TranscodeError
from espresso_gallery.media.policy import TranscodeOptions

logger = logging.getLogger(__name__)

JPEG_BACKGROUND = (255, 255, 255)


@dataclass(frozen=True)
class TranscodedImage:
    data: bytes
    width: int
    height: int


def compute_target_size(
    width: int, height: int, max_width: int, max_height: int
) -> tuple[int, int]:
    """Largest size that fits inside the box with the same aspect ratio. Never upscales."""
    if width <= max_width and height <= max_height:
        return width, height
    ratio = min(max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode == "RGB":
        return img
    if img.mode == "P":
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        bg = Image.new("RGB", img.size, JPEG_BACKGROUND)
        bg.paste(img, mask=img.split()[-1])
        return bg
    return img.convert("RGB")


def transcode_image(source: str | Path | bytes, options: TranscodeOptions) -> TranscodedImage:
    """Decode ``source`` (path or raw bytes) and re-encode it per ``options``.

    Raises:
        TranscodeError: the image cannot be decoded or encoded
    """
    stream = io.BytesIO(source) if isinstance(source, bytes) else source
    try:
        with Image.open(stream) as opened:
            img = ImageOps.exif_transpose(opened)
            w, h = img.size
            new_w, new_h = compute_target_size(w, h, options.max_width, options.max_height)
            if (new_w, new_h) != (w, h):
                img = img.resize((new_w, new_h), Image.Resampling.LANCZOS)
            img = _to_rgb(img)

            buf = io.BytesIO()
            img.save(buf, format="JPEG", quality=options.quality, progressive=True, optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise TranscodeError(f"Error processing image: {e}") from e

    data = buf.getvalue()
    logger.info(
        f"Transcoded {w}x{h} -> {new_w}x{new_h} JPEG q{options.quality} ({len(data):,} bytes)"
    )
    return TranscodedImage(data=data, width=new_w, height=new_h)


async def transcode_image_async(
    source: str | Path | bytes, options: TranscodeOptions
) -> TranscodedImage:
    """``transcode_image`` in a worker thread."""
    return await asyncio.to_thread(transcode_image, source, options)
