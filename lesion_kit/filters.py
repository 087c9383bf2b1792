from typing import Iterable, List

from .types import Detection


def filter_detections(
    detections: Iterable[Detection],
    confidence_threshold: float = 0.80,
    min_box_area: float = 100.0,
) -> List[Detection]:
    """
    Keep detections with `confidence > confidence_threshold` and `w * h >= min_box_area`.
    Areas are in padded-tensor pixels. Input order is preserved.
    """

    return [d for d in detections if d.confidence > confidence_threshold and d.area >= min_box_area]
