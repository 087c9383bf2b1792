from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import InvalidImageError
from .image_ops import ensure_bgr
from .types import LetterboxTransform


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    transform: LetterboxTransform


def compute_transform(width: int, height: int, target_size: int = 640) -> LetterboxTransform:
    """
    Letterbox geometry for a (width, height) image placed in a square `target_size` canvas.
    Padding is split left/top = floor(pad / 2); the odd pixel goes right/bottom.
    """

    if width <= 0 or height <= 0:
        raise InvalidImageError(f"image has zero width or height ({width}x{height})")
    if target_size <= 0:
        raise ValueError("target_size must be > 0")

    r = min(target_size / width, target_size / height)
    resized_w = max(1, int(round(width * r)))
    resized_h = max(1, int(round(height * r)))
    pad_x = (target_size - resized_w) // 2
    pad_y = (target_size - resized_h) // 2

    return LetterboxTransform(
        scale=r,
        pad_x=pad_x,
        pad_y=pad_y,
        target_size=target_size,
        original_width=width,
        original_height=height,
    )


def letterbox(
    image: np.ndarray,
    target_size: int = 640,
    color: Tuple[int, int, int] = (114, 114, 114),
) -> Tuple[np.ndarray, LetterboxTransform]:
    """
    Resize with preserved aspect ratio and pad to a `target_size` square.

    Returns:
        padded: resized + padded image (target_size, target_size, 3)
        transform: parameters needed to map boxes back to `image`
    """
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for letterbox(). Install with `pip install opencv-python`.") from e

    image = ensure_bgr(image)
    h, w = image.shape[:2]
    transform = compute_transform(w, h, target_size)

    resized_w, resized_h = transform.resized_width, transform.resized_height
    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    left, top = transform.pad_x, transform.pad_y
    right = target_size - resized_w - left
    bottom = target_size - resized_h - top
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return padded, transform


def to_blob(padded_bgr: np.ndarray) -> np.ndarray:
    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = padded_bgr[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.transpose(blob, (2, 0, 1))[None, ...]
    return np.ascontiguousarray(blob)


def preprocess(
    image: np.ndarray,
    target_size: int = 640,
    color: Tuple[int, int, int] = (114, 114, 114),
) -> PreprocessResult:
    padded, transform = letterbox(image, target_size=target_size, color=color)
    return PreprocessResult(blob=to_blob(padded), transform=transform)
