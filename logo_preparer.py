"""
Logo preparation: decode the uploaded logo, work out the size it is drawn
at, and re-encode it as a PNG the PDF writer can embed.
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from errors import DecodeError
from placement import validate_number

logger = logging.getLogger(__name__)

# Modes that survive a PNG round trip unchanged
_PNG_SAFE_MODES = ('RGB', 'RGBA', 'L', 'LA')
_HIGH_DEPTH_GRAY_MODES = ('I', 'F', 'I;16', 'I;16L', 'I;16B', 'I;16N')


@dataclass(frozen=True)
class PreparedLogo:
    png_bytes: bytes
    pixel_width: int
    pixel_height: int
    display_width: float
    display_height: float


def compute_display_size(pixel_width: int, pixel_height: int, target_size: float) -> Tuple[float, float]:
    """
    Fit a logo into a `target_size` square while keeping its aspect ratio.

    The longer side becomes exactly `target_size`.
    """
    ratio = pixel_width / pixel_height
    if ratio >= 1:
        return target_size, target_size / ratio
    return target_size * ratio, target_size


def decode_image(image_bytes: bytes) -> Image.Image:
    """
    Decode raster image bytes with Pillow.

    Args:
        image_bytes: PNG, JPEG, WebP, GIF or any other format Pillow reads

    Returns:
        The fully loaded image

    Raises:
        DecodeError: if the bytes are not a readable raster image
    """
    if not image_bytes:
        raise DecodeError("Logo image is empty")
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise DecodeError(f"Logo is not a supported raster image: {e}") from e
    if img.width < 1 or img.height < 1:
        raise DecodeError("Logo image has no pixels")
    return img


def normalize_mode(img: Image.Image) -> Image.Image:
    if img.mode in _PNG_SAFE_MODES:
        return img
    if img.mode == '1':
        return img.convert('L')
    if img.mode in _HIGH_DEPTH_GRAY_MODES:
        if img.mode.startswith('I;16'):
            img = img.convert('I')
        if img.getextrema()[1] > 255:
            # 16-bit samples, map 0..65535 onto 0..255
            img = img.point(lambda v: v * (1 / 257))
        return img.convert('L')
    has_alpha = 'A' in img.getbands() or 'transparency' in img.info
    return img.convert('RGBA' if has_alpha else 'RGB')


def encode_png(img: Image.Image) -> bytes:
    output = BytesIO()
    img.save(output, format='PNG')
    return output.getvalue()


def prepare_logo(image_bytes: bytes, target_size: float) -> PreparedLogo:
    """
    Decode a logo and compute its display dimensions.

    The pixels are re-encoded as PNG at their original resolution; only
    the drawn size changes, so the logo stays sharp when printed.

    Args:
        image_bytes: The logo as uploaded (background already removed, if requested)
        target_size: Length of the logo's longer side on the page, in points

    Returns:
        PreparedLogo with PNG bytes, pixel size and display size
    """
    target_size = validate_number('size', target_size, allow_zero=False)

    img = normalize_mode(decode_image(image_bytes))
    width, height = img.size
    display_width, display_height = compute_display_size(width, height, target_size)

    logger.debug("Prepared %dx%d logo (%s) for display at %.2fx%.2f",
                 width, height, img.mode, display_width, display_height)

    return PreparedLogo(
        png_bytes=encode_png(img),
        pixel_width=width,
        pixel_height=height,
        display_width=display_width,
        display_height=display_height,
    )
