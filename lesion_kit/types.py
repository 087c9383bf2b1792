from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class LetterboxTransform:
    """
    Geometry of one letterbox resize, needed to map boxes back to the original image.
    """

    scale: float
    pad_x: int
    pad_y: int
    target_size: int
    original_width: int
    original_height: int

    @property
    def resized_width(self) -> int:
        return max(1, int(round(self.original_width * self.scale)))

    @property
    def resized_height(self) -> int:
        return max(1, int(round(self.original_height * self.scale)))


@dataclass(frozen=True)
class Detection:
    """
    Candidate detection in padded-tensor space (center format).
    """

    cx: float
    cy: float
    w: float
    h: float
    objectness: float
    class_id: int
    class_prob: float
    confidence: float
    raw_scores: Tuple[float, ...] = field(default=(), repr=False)
    processed_scores: Tuple[float, ...] = field(default=(), repr=False)
    mask_coefficients: Tuple[float, ...] = field(default=(), repr=False)

    @property
    def area(self) -> float:
        return self.w * self.h

    @property
    def center(self) -> Tuple[float, float]:
        return self.cx, self.cy

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.w / 2
        half_h = self.h / 2
        return self.cx - half_w, self.cy - half_h, self.cx + half_w, self.cy + half_h


@dataclass(frozen=True)
class FinalPrediction:
    """
    Labeled box in original-image pixels. `x`, `y` are the box center.
    """

    class_name: str
    confidence: float
    x: float
    y: float
    w: float
    h: float
    class_id: int

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x - self.w / 2, self.y - self.h / 2, self.x + self.w / 2, self.y + self.h / 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class": self.class_name,
            "confidence": float(self.confidence),
            "bbox": [float(self.x), float(self.y), float(self.w), float(self.h)],
            "classId": int(self.class_id),
        }


@dataclass(frozen=True)
class AnalysisResult:
    predictions: List[FinalPrediction]
    annotated_image: bytes = field(repr=False)
    original_width: int
    original_height: int
    preprocessing_ratio: float

    def to_payload(self, *, include_image: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "predictions": [p.to_dict() for p in self.predictions],
            "originalDimensions": {"width": self.original_width, "height": self.original_height},
            "preprocessingRatio": float(self.preprocessing_ratio),
        }
        if include_image:
            payload["annotatedImage"] = self.annotated_image
        return payload
