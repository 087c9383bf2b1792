"""
Skin-lesion detection post-processing around an ONNX detector.

Turns one raw `[1, C, N]` output tensor plus the original image into a short
list of labeled boxes in original-image pixels and an annotated JPEG. Only
NumPy and OpenCV are needed for the core; ONNX Runtime is imported when a
model is actually loaded.
"""

from .types import AnalysisResult, Detection, FinalPrediction, LetterboxTransform
from .errors import (
    AnnotationError,
    ClassCountMismatchError,
    InferenceError,
    InvalidImageError,
    LesionKitError,
    ModelLoadError,
    PostprocessError,
    PreprocessError,
)
from .letterbox import letterbox, preprocess
from .decode import decode_output
from .filters import filter_detections
from .nms import NMSConfig, box_iou, nms
from .merge import merge_detections
from .coords import map_to_original
from .visualize import annotate, draw_predictions
from .config import PipelineConfig, load_pipeline_config
from .metadata import DEFAULT_CLASS_NAMES, load_class_names
from .runtime import LesionPipeline, ModelHandle, load_pipeline

__all__ = [
    "AnalysisResult",
    "Detection",
    "FinalPrediction",
    "LetterboxTransform",
    "AnnotationError",
    "ClassCountMismatchError",
    "InferenceError",
    "InvalidImageError",
    "LesionKitError",
    "ModelLoadError",
    "PostprocessError",
    "PreprocessError",
    "letterbox",
    "preprocess",
    "decode_output",
    "filter_detections",
    "NMSConfig",
    "box_iou",
    "nms",
    "merge_detections",
    "map_to_original",
    "annotate",
    "draw_predictions",
    "PipelineConfig",
    "load_pipeline_config",
    "DEFAULT_CLASS_NAMES",
    "load_class_names",
    "LesionPipeline",
    "ModelHandle",
    "load_pipeline",
]
