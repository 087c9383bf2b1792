from typing import List, Optional, Sequence, Union

import numpy as np

from .errors import ClassCountMismatchError
from .types import Detection

# Output rows per candidate: [cx, cy, w, h, obj, mask x32, class logits...]
BOX_ROWS = 4
OBJECTNESS_ROW = 4
MASK_OFFSET = 5
NUM_MASK_COEFFICIENTS = 32
CLASS_OFFSET = MASK_OFFSET + NUM_MASK_COEFFICIENTS


def sigmoid(x: np.ndarray) -> np.ndarray:
    # tanh form never overflows for large |x|
    x = np.asarray(x, dtype=np.float64)
    return 0.5 * (1.0 + np.tanh(0.5 * x))


def softmax(logits: np.ndarray, axis: int = -1) -> np.ndarray:
    logits = np.asarray(logits, dtype=np.float64)
    shifted = logits - np.max(logits, axis=axis, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=axis, keepdims=True)


def num_classes_for_channels(channels: int) -> int:
    return int(channels) - CLASS_OFFSET


def check_class_count(output_shape: Sequence[Union[int, str, None]], num_classes: int) -> None:
    """
    Validate a runtime output shape `[1, C, N]` against the class-name table length.

    Symbolic (non-integer) channel dimensions cannot be checked and are accepted.
    """

    if len(output_shape) != 3:
        raise ClassCountMismatchError(f"expected a rank-3 output shape [1, C, N], got {list(output_shape)}")
    channels = output_shape[1]
    if not isinstance(channels, (int, np.integer)):
        return
    decoded = num_classes_for_channels(int(channels))
    if decoded != num_classes:
        raise ClassCountMismatchError(
            f"model output has {channels} channels ({decoded} classes) but {num_classes} class names are configured"
        )


def decode_output(output: np.ndarray, num_classes: Optional[int] = None) -> List[Detection]:
    """
    Decode one `[1, C, N]` output tensor into N candidate detections (no filtering).

    Args:
        output: raw model output for a single image
        num_classes: expected class count; when given it must equal `C - 37`
    """

    p = np.asarray(output)
    if p.ndim != 3:
        raise ValueError(f"Unsupported output shape {p.shape}; expected [1, C, N].")
    if p.shape[0] != 1:
        raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
    p = p[0]

    channels = p.shape[0]
    decoded_classes = num_classes_for_channels(channels)
    if decoded_classes < 1:
        raise ValueError(f"Output has {channels} channels; need at least {CLASS_OFFSET + 1}.")
    if num_classes is not None and decoded_classes != num_classes:
        raise ClassCountMismatchError(
            f"model output has {channels} channels ({decoded_classes} classes) "
            f"but {num_classes} class names are configured",
            stage="postprocess",
        )

    boxes = p[0:BOX_ROWS, :].T.astype(np.float64)  # (N, 4) as cx, cy, w, h
    objectness = sigmoid(p[OBJECTNESS_ROW, :])
    masks = p[MASK_OFFSET:CLASS_OFFSET, :].T
    logits = p[CLASS_OFFSET:, :].T.astype(np.float64)  # (N, classes)

    probs = softmax(logits, axis=1)
    class_ids = np.argmax(probs, axis=1)
    class_prob = probs[np.arange(probs.shape[0]), class_ids]
    scores = objectness * class_prob

    return [
        Detection(
            cx=float(cx),
            cy=float(cy),
            w=float(w),
            h=float(h),
            objectness=float(obj),
            class_id=int(cls_id),
            class_prob=float(prob),
            confidence=float(score),
            raw_scores=tuple(float(v) for v in raw),
            processed_scores=tuple(float(v) for v in processed),
            mask_coefficients=tuple(float(v) for v in mask),
        )
        for (cx, cy, w, h), obj, cls_id, prob, score, raw, processed, mask in zip(
            boxes, objectness, class_ids, class_prob, scores, logits, probs, masks
        )
    ]
