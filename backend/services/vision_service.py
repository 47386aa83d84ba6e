"""
Vision Service — sends a receipt image to Claude Vision together with the
extraction prompt and returns the model's raw text reply.

This is a thin client: it does not interpret the reply (see response_parser)
and never retries.  Any failure is reported as OracleError.
"""
import base64
import binascii
import io
import logging
import os
import re
from typing import Union

import anthropic
from PIL import Image, ImageOps

logger = logging.getLogger("receiptscan.vision")
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
VISION_MODEL = os.environ.get("VISION_MODEL", "claude-sonnet-4-5")
VISION_MAX_TOKENS = int(os.environ.get("VISION_MAX_TOKENS", "4096"))

# Register HEIC/HEIF support via pillow-heif if available
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HEIF_AVAILABLE = True
except ImportError:
    HEIF_AVAILABLE = False
    logger.info("pillow-heif not installed — HEIC files will not be supported")

ImageInput = Union[bytes, str]

DATA_URI_RE = re.compile(r"^data:(?P<media>image/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)
MAX_DIMENSION = 1568   # Claude Vision optimal long side
HEIF_BRANDS = (b"heic", b"heix", b"hevc", b"heim", b"heis", b"mif1", b"msf1")


class OracleError(Exception):
    """Raised when the vision call fails or returns nothing usable."""
    pass


def detect_media_type(image_bytes: bytes) -> str:
    """Guess the media type from magic bytes (JPEG when unknown)."""
    if image_bytes[:4] == b'\x89PNG':
        return "image/png"
    if image_bytes[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if image_bytes[:4] == b'GIF8':
        return "image/gif"
    if image_bytes[:4] == b'RIFF' and image_bytes[8:12] == b'WEBP':
        return "image/webp"
    return "image/jpeg"


def _looks_like_heif(image_bytes: bytes) -> bool:
    return image_bytes[4:8] == b"ftyp" and image_bytes[8:12] in HEIF_BRANDS


def prepare_image(image_bytes: bytes) -> tuple[bytes, str]:
    """
    Normalise EXIF orientation, shrink to MAX_DIMENSION on the long side and
    re-encode as JPEG.  Returns (bytes, media_type).
    """
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img = ImageOps.exif_transpose(img)
    except Exception as e:
        if not HEIF_AVAILABLE and _looks_like_heif(image_bytes):
            raise OracleError(
                "HEIC/HEIF images require pillow-heif. "
                "Install it with: pip install receiptscan[heic]"
            ) from e
        raise OracleError(f"Cannot open image: {e}") from e

    if img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    w, h = img.size
    long_side = max(w, h)
    if long_side > MAX_DIMENSION:
        scale = MAX_DIMENSION / long_side
        img = img.resize((int(w * scale), int(h * scale)), Image.LANCZOS)
        logger.debug("Resized image %d×%d → %d×%d", w, h, img.size[0], img.size[1])

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=92, optimize=True)
    return buf.getvalue(), "image/jpeg"


def build_image_source(image: ImageInput) -> dict:
    """Turn bytes, a base64 string, a data URI or a URL into a Messages API image source."""
    if isinstance(image, (bytes, bytearray)):
        if not image:
            raise OracleError("Image is empty")
        data, media_type = prepare_image(bytes(image))
        return {
            "type": "base64",
            "media_type": media_type,
            "data": base64.standard_b64encode(data).decode(),
        }

    if not isinstance(image, str) or not image.strip():
        raise OracleError("Image must be bytes, a base64 string or a URL")

    image = image.strip()
    if image.startswith(("http://", "https://")):
        return {"type": "url", "url": image}

    m = DATA_URI_RE.match(image)
    if m:
        return {"type": "base64", "media_type": m.group("media"), "data": m.group("data")}

    try:
        raw = base64.b64decode(image, validate=True)
    except (binascii.Error, ValueError) as e:
        raise OracleError("Image string is neither a URL nor valid base64") from e
    return {"type": "base64", "media_type": detect_media_type(raw), "data": image}


async def call_vision(image: ImageInput, prompt: str) -> str:
    """Send ``image`` and ``prompt`` to Claude Vision and return the reply text."""
    if not ANTHROPIC_API_KEY:
        raise OracleError("ANTHROPIC_API_KEY not set")

    source = build_image_source(image)
    logger.info("Sending %s image to %s", source.get("media_type", "url"), VISION_MODEL)

    client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
    try:
        message = await client.messages.create(
            model=VISION_MODEL,
            max_tokens=VISION_MAX_TOKENS,
            temperature=0.0,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "image", "source": source},
                    {"type": "text", "text": prompt},
                ],
            }],
        )
    except Exception as e:
        logger.error("Claude Vision error: %s", e)
        raise OracleError(f"Vision request failed: {e}") from e

    text = "".join(
        block.text for block in message.content
        if getattr(block, "type", None) == "text" and isinstance(getattr(block, "text", None), str)
    ).strip()
    if not text:
        raise OracleError("Vision reply contained no text")
    return text
