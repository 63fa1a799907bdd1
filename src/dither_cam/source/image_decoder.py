"""
Image Decoder
=============

Dedicated module for turning encoded images and capture buffers into
RGBA frames.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Always returns (H, W, 4) uint8 in RGBA channel order
    - Validates shape and dtype
    - Fails fast with DecodeError on anything that is not an image
"""

import base64
import binascii
import logging
import time
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from dither_cam.models.frame import Frame


logger = logging.getLogger(__name__)


class DecodeError(ValueError):
    """Raised when an uploaded file is not a valid image."""
    pass


def to_rgba(image: np.ndarray) -> np.ndarray:
    """
    Convert an OpenCV image (gray, BGR or BGRA) to RGBA.

    Args:
        image: Decoded OpenCV image

    Returns:
        (H, W, 4) uint8 RGBA array

    Raises:
        DecodeError: If the layout or dtype is unsupported
    """
    if image.dtype != np.uint8:
        raise DecodeError(f"Unsupported image dtype: {image.dtype}")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2RGBA)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

    raise DecodeError(f"Unsupported image shape: {image.shape}")


def decode_image_bytes(data: bytes, frame_id: int = 0) -> Frame:
    """
    Decode an encoded image file (PNG, JPEG, BMP, ...) into a Frame.

    Args:
        data: Raw file contents
        frame_id: Frame id to stamp on the result

    Returns:
        RGBA Frame

    Raises:
        DecodeError: If decoding fails or the image is invalid
    """
    if not data:
        raise DecodeError("Image data is empty")

    try:
        nparr = np.frombuffer(data, np.uint8)
        # IMREAD_UNCHANGED keeps an alpha channel when the file has one
        image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise DecodeError(f"OpenCV failed to decode image: {e}") from e

    if image is None:
        raise DecodeError("Failed to decode image: cv2.imdecode returned None")

    if image.dtype == np.uint16:
        # 16-bit PNG/TIFF: keep the high byte
        image = (image >> 8).astype(np.uint8)

    pixels = to_rgba(image)
    logger.debug(f"Decoded image: {pixels.shape[1]}x{pixels.shape[0]}")
    return Frame(pixels=pixels, frame_id=frame_id, timestamp=time.time())


def decode_image_base64(text: str, frame_id: int = 0) -> Frame:
    """
    Decode a base64-encoded image file into a Frame.

    A data URL prefix ("data:image/png;base64,") is accepted and stripped.

    Raises:
        DecodeError: If base64 or image decoding fails
    """
    if text.startswith("data:"):
        _, _, text = text.partition(",")

    try:
        data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Base64 decode failed: {e}") from e

    return decode_image_bytes(data, frame_id=frame_id)


def decode_image_file(path: Union[str, Path], frame_id: int = 0) -> Frame:
    """
    Read and decode an image file from disk.

    Raises:
        DecodeError: If the file cannot be read or decoded
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise DecodeError(f"Cannot read image file {path}: {e}") from e

    return decode_image_bytes(data, frame_id=frame_id)


def frame_from_capture(bgr: np.ndarray, frame_id: int) -> Frame:
    """
    Wrap a BGR capture buffer as an RGBA Frame.

    Raises:
        DecodeError: If the capture buffer has an unexpected layout
    """
    return Frame(pixels=to_rgba(bgr), frame_id=frame_id, timestamp=time.time())


def encode_png(frame: Frame) -> bytes:
    """
    Encode a Frame as PNG bytes.

    Raises:
        ValueError: If OpenCV refuses to encode
    """
    bgra = cv2.cvtColor(frame.pixels, cv2.COLOR_RGBA2BGRA)
    ok, buf = cv2.imencode(".png", bgra)
    if not ok:
        raise ValueError(f"Failed to encode frame {frame.frame_id} as PNG")
    return buf.tobytes()
