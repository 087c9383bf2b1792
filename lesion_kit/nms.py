from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .types import Detection


@dataclass(frozen=True)
class NMSConfig:
    iou_threshold: float = 0.15
    max_detections: Optional[int] = None
    # Default matches the deployed model: one pass over all classes.
    # False runs greedy NMS per class, then merges results by confidence.
    class_agnostic: bool = True


def box_iou(a: Tuple[float, float, float, float], b: Tuple[float, float, float, float]) -> float:
    """
    IoU of two center-format boxes (cx, cy, w, h). Returns 0.0 for disjoint or degenerate boxes.
    """

    ax1, ay1, ax2, ay2 = a[0] - a[2] / 2, a[1] - a[3] / 2, a[0] + a[2] / 2, a[1] + a[3] / 2
    bx1, by1, bx2, by2 = b[0] - b[2] / 2, b[1] - b[3] / 2, b[0] + b[2] / 2, b[1] + b[3] / 2

    inter_w = max(0.0, min(ax2, bx2) - max(ax1, bx1))
    inter_h = max(0.0, min(ay2, by2) - max(ay1, by1))
    inter = inter_w * inter_h
    if inter <= 0.0:
        return 0.0

    union = a[2] * a[3] + b[2] * b[3] - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def nms_indices(boxes: np.ndarray, scores: np.ndarray, iou_threshold: float, max_detections: Optional[int] = None) -> np.ndarray:
    """
    Greedy NumPy NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first. Equal scores keep input order.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = (x2 - x1) * (y2 - y1)

    order = np.argsort(-scores, kind="stable")
    keep = []

    while order.size > 0:
        if max_detections is not None and len(keep) >= max_detections:
            break
        i = order[0]
        keep.append(i)

        xx1 = np.maximum(x1[i], x1[order[1:]])
        yy1 = np.maximum(y1[i], y1[order[1:]])
        xx2 = np.minimum(x2[i], x2[order[1:]])
        yy2 = np.minimum(y2[i], y2[order[1:]])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[order[1:]] - inter
        iou = inter / np.maximum(union, 1e-6)

        # Suppress anything overlapping at or above the threshold.
        inds = np.where(iou < iou_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int64)


def nms(detections: Sequence[Detection], cfg: NMSConfig = NMSConfig()) -> List[Detection]:
    """
    Non-maximum suppression over decoded candidates.

    Class-agnostic by default: a high-confidence box of one class suppresses an
    overlapping box of another class.
    """

    if not detections:
        return []

    boxes = np.array([d.as_xyxy() for d in detections], dtype=np.float64)
    scores = np.array([d.confidence for d in detections], dtype=np.float64)

    if cfg.class_agnostic:
        keep = nms_indices(boxes, scores, cfg.iou_threshold, cfg.max_detections)
        return [detections[i] for i in keep]

    class_ids = np.array([d.class_id for d in detections])
    kept: List[int] = []
    for cls in np.unique(class_ids):
        idx = np.where(class_ids == cls)[0]
        keep_local = nms_indices(boxes[idx], scores[idx], cfg.iou_threshold, cfg.max_detections)
        kept.extend(idx[keep_local].tolist())

    kept_arr = np.array(kept, dtype=np.int64)
    # Re-sort by score; ties fall back to decode order.
    order = np.lexsort((kept_arr, -scores[kept_arr]))
    kept_arr = kept_arr[order]
    if cfg.max_detections is not None:
        kept_arr = kept_arr[: cfg.max_detections]
    return [detections[i] for i in kept_arr]
