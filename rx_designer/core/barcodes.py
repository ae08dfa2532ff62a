"""
QR rendering helpers.

Dependencies:
- Pillow              → pip install pillow
- qrcode (QR Code)    → pip install qrcode[pil]

Images are returned as PNG bytes so they can be frozen into a snapshot and
persisted as-is; the Qt rasterizer decodes them at paint time.
"""
from __future__ import annotations

import io
from collections import OrderedDict
from typing import Tuple

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image


# Cache for rendered QR images, least recently used evicted first:
# key = (data_string, side_px, ec_level)
QR_CACHE_SIZE = 64
_QR_PNG_CACHE: OrderedDict[Tuple[str, int, str], bytes] = OrderedDict()

MAX_QR_BYTES = 1800
MIN_QR_SIDE_PX = 50
QR_BORDER = 2

_EC_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


# --- Exceptions -----------------------------------------------------------


class BarcodeValidationError(Exception):
    """Raised when QR data is empty or too long to encode."""
    pass


class BarcodeEncodingError(Exception):
    """Raised when the encoder fails on data that passed validation."""
    pass


# --- Validation -----------------------------------------------------------


def validate_qr_data(data: str) -> str:
    data = data or ""
    if not data.strip():
        raise BarcodeValidationError("QR Code data cannot be empty.")
    size = len(data.encode("utf-8"))
    if size > MAX_QR_BYTES:
        raise BarcodeValidationError(
            f"QR Code data too long ({size} bytes > {MAX_QR_BYTES})."
        )
    return data


# --- Rendering ------------------------------------------------------------


def render_qr_image(data: str, side_px: int, ec_level: str = "M") -> Image.Image:
    """
    Encode *data* and return a square black-on-white Pillow image of exactly
    side_px x side_px (never below MIN_QR_SIDE_PX).
    """
    data = validate_qr_data(data)
    side = max(MIN_QR_SIDE_PX, int(side_px))

    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=_EC_LEVELS.get(ec_level.upper(), qrcode.constants.ERROR_CORRECT_M),
            box_size=1,
            border=QR_BORDER,
        )
        qr.add_data(data)
        qr.make(fit=True)
    except DataOverflowError as exc:
        raise BarcodeValidationError(f"QR Code data does not fit any QR version: {exc}") from exc
    except Exception as exc:
        raise BarcodeEncodingError(f"QR encoding failed: {type(exc).__name__}: {exc}") from exc

    # Whole-pixel modules first, then snap to the exact element size
    modules = qr.modules_count + 2 * QR_BORDER
    qr.box_size = max(1, side // modules)
    try:
        pil_img = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    except Exception as exc:
        raise BarcodeEncodingError(f"QR image generation failed: {type(exc).__name__}: {exc}") from exc

    if pil_img.size != (side, side):
        pil_img = pil_img.resize((side, side), Image.Resampling.NEAREST)
    return pil_img


def render_qr_png(data: str, side_px: int, ec_level: str = "M") -> bytes:
    """PNG bytes for render_qr_image(), with caching."""
    key = (data or "", int(side_px), ec_level.upper())
    cached = _QR_PNG_CACHE.get(key)
    if cached is not None:
        _QR_PNG_CACHE.move_to_end(key)
        return cached

    img = render_qr_image(data, side_px, ec_level)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    png = buf.getvalue()

    _QR_PNG_CACHE[key] = png
    while len(_QR_PNG_CACHE) > QR_CACHE_SIZE:
        _QR_PNG_CACHE.popitem(last=False)
    return png


def png_size(png: bytes) -> Tuple[int, int]:
    with Image.open(io.BytesIO(png)) as img:
        return img.size


def clear_cache() -> None:
    _QR_PNG_CACHE.clear()
