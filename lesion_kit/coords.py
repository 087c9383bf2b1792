from typing import Iterable, List, Sequence

from .errors import PostprocessError
from .types import Detection, FinalPrediction, LetterboxTransform


def map_to_original(
    detections: Iterable[Detection],
    transform: LetterboxTransform,
    class_names: Sequence[str],
) -> List[FinalPrediction]:
    """
    Map padded-tensor boxes back to original-image pixels by inverting `transform`.

    The transform must be the one produced for the same image; boxes stay in center
    format and are not clipped.
    """

    scale = transform.scale
    out: List[FinalPrediction] = []
    for d in detections:
        if not 0 <= d.class_id < len(class_names):
            raise PostprocessError(f"class id {d.class_id} outside class table of size {len(class_names)}")
        out.append(
            FinalPrediction(
                class_name=class_names[d.class_id],
                confidence=d.confidence,
                x=(d.cx - transform.pad_x) / scale,
                y=(d.cy - transform.pad_y) / scale,
                w=d.w / scale,
                h=d.h / scale,
                class_id=d.class_id,
            )
        )
    return out
