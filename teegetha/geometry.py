"""
Image geometry utilities for TeeGetha.

This module handles:
- Decoding image references (data URLs, raw bytes, http URLs)
- Cropping a detected person out of a group photo onto a square canvas
- Stripping near-neutral studio backgrounds to transparency
- Overlaying a name label onto artwork
"""

import base64
import binascii
import io
import math
from typing import Callable, Optional, Sequence, Tuple, Union

import httpx
import numpy as np
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError
from loguru import logger

from teegetha.errors import ImageProcessingError


ImageSource = Union[Image.Image, bytes, str]

# Horizontal / vertical padding as a fraction of the box size; vertical is
# larger so a face box still includes the torso.
DEFAULT_PADDING = (0.15, 0.2)
CANVAS_FILL = (255, 255, 255)

NEUTRAL_TOLERANCE = 15
LIGHT_THRESHOLD = 220
DARK_THRESHOLD = 35


def is_data_url(ref) -> bool:
    return isinstance(ref, str) and ref.startswith('data:')


def is_http_url(ref) -> bool:
    return isinstance(ref, str) and ref.startswith(('http://', 'https://'))


def encode_data_url(data: bytes, mime_type: str = 'image/png') -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(ref: str) -> Tuple[bytes, str]:
    """Split a data URL into (raw bytes, mime type)."""
    header, _, payload = ref.partition(',')
    mime_type = header[5:].split(';')[0] or 'application/octet-stream'
    try:
        return base64.b64decode(payload), mime_type
    except (binascii.Error, ValueError) as e:
        raise ImageProcessingError(f"Invalid base64 image data: {e}")


def _fetch_url(url: str) -> bytes:
    response = httpx.get(url, timeout=30.0, follow_redirects=True)
    response.raise_for_status()
    return response.content


def read_image_bytes(source: Union[bytes, str], fetch: Optional[Callable[[str], bytes]] = None) -> bytes:
    """Raw bytes behind a data URL, http URL or byte string."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if is_data_url(source):
        data, _ = decode_data_url(source)
        return data
    if is_http_url(source):
        try:
            return (fetch or _fetch_url)(source)
        except httpx.HTTPError as e:
            raise ImageProcessingError(f"Failed to download image: {e}", details={'url': source})
    raise ImageProcessingError("Unsupported image reference",
                               details={'reference': str(source)[:40]})


def load_image(source: ImageSource, fetch: Optional[Callable[[str], bytes]] = None) -> Image.Image:
    """Open any supported image reference as a PIL image."""
    if isinstance(source, Image.Image):
        return source

    data = read_image_bytes(source, fetch)
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageProcessingError(f"Could not decode image: {e}")
    return image


def image_to_bytes(image: Image.Image, fmt: str = 'PNG', **save_kwargs) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


def crop_box_pixels(size: Tuple[int, int], box: Sequence[float],
                    padding: Tuple[float, float] = DEFAULT_PADDING) -> Tuple[int, int, int, int]:
    """
    Convert a normalized [ymin, xmin, ymax, xmax] box (0-1000) to a padded
    pixel rectangle (left, top, width, height) clamped to the image.
    """
    if len(box) != 4:
        raise ImageProcessingError("Bounding box must have 4 values", details={'box': list(box)})

    img_w, img_h = size
    ymin, xmin, ymax, xmax = box
    w_raw = xmax - xmin
    h_raw = ymax - ymin
    pad_x = w_raw * padding[0]
    pad_y = h_raw * padding[1]

    x = max(0.0, (xmin - pad_x) / 1000 * img_w)
    y = max(0.0, (ymin - pad_y) / 1000 * img_h)
    w = min(img_w - x, (w_raw + pad_x * 2) / 1000 * img_w)
    h = min(img_h - y, (h_raw + pad_y * 2) / 1000 * img_h)

    left, top = int(round(x)), int(round(y))
    width, height = int(round(w)), int(round(h))
    if width <= 0 or height <= 0:
        raise ImageProcessingError("Bounding box is empty after clamping",
                                   details={'box': list(box), 'image_size': [img_w, img_h]})
    return left, top, width, height


def crop_to_box(image: ImageSource, box: Sequence[float],
                padding: Tuple[float, float] = DEFAULT_PADDING,
                fetch: Optional[Callable[[str], bytes]] = None) -> bytes:
    """
    Crop a detected person out of ``image`` and center it on a square canvas.

    The canvas side is the larger of the cropped width/height; the rest is
    filled white. Returns JPEG bytes.
    """
    source = load_image(image, fetch)
    left, top, width, height = crop_box_pixels(source.size, box, padding)

    region = source.crop((left, top, left + width, top + height))
    side = max(width, height)
    canvas = Image.new('RGB', (side, side), CANVAS_FILL)
    offset = ((side - width) // 2, (side - height) // 2)

    if region.mode in ('RGBA', 'LA', 'P'):
        region = region.convert('RGBA')
        canvas.paste(region, offset, region)
    else:
        canvas.paste(region.convert('RGB'), offset)

    logger.debug(f"Cropped box {list(box)} -> {width}x{height} on {side}px canvas")
    return image_to_bytes(canvas, 'JPEG', quality=95)


def neutral_background_mask(rgb: np.ndarray) -> np.ndarray:
    """Boolean mask of near-gray pixels that are very light or very dark."""
    channels = rgb.astype(np.int16)
    high = channels.max(axis=-1)
    low = channels.min(axis=-1)
    is_neutral = (high - low) < NEUTRAL_TOLERANCE
    return is_neutral & ((high > LIGHT_THRESHOLD) | (high < DARK_THRESHOLD))


def strip_neutral_background(image: ImageSource,
                             fetch: Optional[Callable[[str], bytes]] = None) -> bytes:
    """
    Make checkerboard / studio backdrop pixels transparent.

    Subjects with large near-white or near-black regions lose those too;
    this is only a fallback when background removal is unavailable.
    Returns PNG bytes.
    """
    rgba = np.array(load_image(image, fetch).convert('RGBA'))
    mask = neutral_background_mask(rgba[..., :3])
    rgba[..., 3][mask] = 0

    logger.debug(f"Stripped {int(mask.sum())} of {mask.size} pixels as background")
    return image_to_bytes(Image.fromarray(rgba, 'RGBA'), 'PNG')


def _label_font(size: int) -> ImageFont.ImageFont:
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def overlay_text(image: ImageSource, text: str,
                 fetch: Optional[Callable[[str], bytes]] = None) -> bytes:
    """
    Draw ``text`` centered near the bottom of the image, white with a black
    outline. Font size is 10% of the image height. Returns PNG bytes.
    """
    canvas = load_image(image, fetch).convert('RGBA')
    width, height = canvas.size

    font_size = max(1, math.floor(height * 0.1))
    stroke = max(2, round(font_size * 0.08))
    x = width / 2
    y = height - height * 0.05

    draw = ImageDraw.Draw(canvas)
    draw.text(
        (x, y), text,
        font=_label_font(font_size),
        fill='white',
        anchor='md',
        stroke_width=stroke,
        stroke_fill='black',
    )
    return image_to_bytes(canvas, 'PNG')
