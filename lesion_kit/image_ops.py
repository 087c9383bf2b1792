from __future__ import annotations

import numpy as np

from .errors import AnnotationError, InvalidImageError


def _require_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for image decoding. Install with `pip install opencv-python`.") from e
    return cv2


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode JPEG/PNG bytes into a BGR (H, W, 3) uint8 array.
    """

    cv2 = _require_cv2()
    if not data:
        raise InvalidImageError("image buffer is empty")

    buf = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if image is None:
        raise InvalidImageError(f"could not decode image ({len(data)} bytes)")
    return ensure_bgr(image)


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """
    Normalize a decoded image to 3-channel BGR. Grayscale is expanded, alpha is dropped.
    """

    cv2 = _require_cv2()
    if image is None or not hasattr(image, "shape"):
        raise InvalidImageError("image must be a NumPy array")
    if image.size == 0 or image.shape[0] == 0 or (image.ndim > 1 and image.shape[1] == 0):
        raise InvalidImageError(f"image has zero width or height (shape {image.shape})")

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    raise InvalidImageError(f"Expected image shape (H, W), (H, W, 3) or (H, W, 4), got {image.shape}")


def encode_jpeg(image_bgr: np.ndarray, quality: int = 90) -> bytes:
    cv2 = _require_cv2()
    ok, buf = cv2.imencode(".jpg", image_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise AnnotationError("JPEG encoding failed")
    return buf.tobytes()
