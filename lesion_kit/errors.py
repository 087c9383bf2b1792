"""
Error taxonomy for the detection pipeline.

Every error carries the pipeline stage it came from so callers at the service
boundary can build a well-formed error payload without inspecting types.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LesionKitError(Exception):
    stage = "pipeline"

    def __init__(self, message: str, *, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage

    def to_payload(self) -> Dict[str, Any]:
        return {"status": "error", "stage": self.stage, "message": f"{self.stage}: {self.message}"}


class InvalidImageError(LesionKitError):
    """Empty, corrupt or zero-sized input image."""

    stage = "decode_image"


class ModelLoadError(LesionKitError):
    """The inference backend could not be initialized. Sticky for the process."""

    stage = "load_model"


class ClassCountMismatchError(LesionKitError):
    """Class-name table length disagrees with the model output width."""

    stage = "load_model"


class PreprocessError(LesionKitError):
    stage = "preprocess"


class InferenceError(LesionKitError):
    stage = "inference"


class PostprocessError(LesionKitError):
    stage = "postprocess"


class AnnotationError(LesionKitError):
    stage = "annotate"
