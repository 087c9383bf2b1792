from __future__ import annotations

import enum
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from .coords import map_to_original
from .config import PipelineConfig
from .decode import check_class_count, decode_output
from .errors import (
    AnnotationError,
    InferenceError,
    InvalidImageError,
    LesionKitError,
    ModelLoadError,
    PostprocessError,
    PreprocessError,
)
from .filters import filter_detections
from .image_ops import decode_image
from .letterbox import PreprocessResult, preprocess
from .merge import merge_detections
from .metadata import DEFAULT_CLASS_NAMES, load_class_names
from .nms import nms
from .types import AnalysisResult, FinalPrediction, LetterboxTransform
from .visualize import annotate


PathLike = Union[str, Path]

LOGGER = logging.getLogger(__name__)


def find_project_root(
    start: Optional[PathLike] = None,
    markers: Sequence[str] = ("pyproject.toml", ".git"),
) -> Path:
    """
    Best-effort project root discovery, used to resolve relative model paths.
    """

    p = Path(start) if start is not None else Path.cwd()
    p = p.resolve()
    if p.is_file():
        p = p.parent

    for parent in (p, *p.parents):
        for m in markers:
            if (parent / m).exists():
                return parent
    return p


def resolve_path(path: PathLike, root: Optional[PathLike] = "auto") -> Path:
    p = Path(path)
    if p.is_absolute():
        return p

    if root == "auto" or root is None:
        base = find_project_root()
    else:
        base = Path(root).resolve()

    return (base / p).resolve()


class HandleState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ModelHandle:
    """
    Load-once cell for the inference backend.

    The first `get()` runs `loader` while holding a lock, so concurrent first
    callers wait for that single load and all receive the same backend. A
    failed load is remembered and re-raised on every later call.
    """

    def __init__(self, loader: Callable[[], Any]):
        self._loader = loader
        self._lock = threading.Lock()
        self._state = HandleState.UNINITIALIZED
        self._backend: Any = None
        self._error: Optional[LesionKitError] = None

    @property
    def state(self) -> HandleState:
        return self._state

    def get(self) -> Any:
        if self._state is HandleState.READY:
            return self._backend

        with self._lock:
            if self._state is HandleState.READY:
                return self._backend
            if self._error is not None:
                raise self._fresh_error()

            self._state = HandleState.LOADING
            try:
                backend = self._loader()
            except LesionKitError as exc:
                self._fail(exc)
                raise
            except Exception as exc:
                err = ModelLoadError(f"failed to load model: {exc}")
                self._fail(err)
                raise err from exc

            self._backend = backend
            self._state = HandleState.READY
            return backend

    def _fail(self, exc: LesionKitError) -> None:
        LOGGER.error("Model handle failed permanently: %s", exc)
        # Cached without a traceback; every later get() raises a fresh copy.
        self._error = type(exc)(exc.message, stage=exc.stage)
        self._state = HandleState.FAILED

    def _fresh_error(self) -> LesionKitError:
        err = self._error
        return type(err)(err.message, stage=err.stage)


class LesionPipeline:
    """
    Request pipeline: decode -> letterbox -> inference -> decode output -> filter
    -> NMS -> merge -> map to original pixels -> annotate.

    Holds no per-request state; one instance serves concurrent callers.
    """

    def __init__(
        self,
        model: ModelHandle,
        class_names: Sequence[str] = DEFAULT_CLASS_NAMES,
        cfg: PipelineConfig = PipelineConfig(),
    ):
        if not class_names:
            raise ValueError("class_names must not be empty")
        self.model = model
        self.class_names = tuple(class_names)
        self.cfg = cfg
        self._nms_cfg = cfg.nms_config()

    def warmup(self) -> Any:
        """Load the model now and run the startup checks."""
        return self.model.get()

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        try:
            return preprocess(image_bgr, target_size=self.cfg.target_size, color=self.cfg.pad_color)
        except LesionKitError:
            raise
        except Exception as exc:
            raise PreprocessError(str(exc)) from exc

    def infer(self, blob: np.ndarray) -> np.ndarray:
        backend = self.model.get()
        try:
            return np.asarray(backend.infer(blob))
        except Exception as exc:
            raise InferenceError(str(exc)) from exc

    def postprocess(self, output: np.ndarray, transform: LetterboxTransform) -> List[FinalPrediction]:
        try:
            candidates = decode_output(output, num_classes=len(self.class_names))
            kept = filter_detections(
                candidates,
                confidence_threshold=self.cfg.confidence_threshold,
                min_box_area=self.cfg.min_box_area,
            )
            kept = nms(kept, self._nms_cfg)
            merged = merge_detections(kept, distance_threshold=self.cfg.merge_distance_threshold)
            return map_to_original(merged, transform, self.class_names)
        except LesionKitError:
            raise
        except Exception as exc:
            raise PostprocessError(str(exc)) from exc

    def detect(self, image_bgr: np.ndarray) -> Tuple[List[FinalPrediction], LetterboxTransform]:
        prep = self.preprocess(image_bgr)
        output = self.infer(prep.blob)
        return self.postprocess(output, prep.transform), prep.transform

    def annotate(self, image_bgr: np.ndarray, predictions: Sequence[FinalPrediction]) -> bytes:
        try:
            return annotate(image_bgr, predictions, quality=self.cfg.jpeg_quality)
        except LesionKitError:
            raise
        except Exception as exc:
            raise AnnotationError(str(exc)) from exc

    def analyze(self, image_bytes: bytes) -> AnalysisResult:
        try:
            image = decode_image(image_bytes)
        except LesionKitError:
            raise
        except Exception as exc:
            raise InvalidImageError(str(exc)) from exc

        predictions, transform = self.detect(image)
        annotated = self.annotate(image, predictions)
        return AnalysisResult(
            predictions=predictions,
            annotated_image=annotated,
            original_width=transform.original_width,
            original_height=transform.original_height,
            preprocessing_ratio=transform.scale,
        )

    def predict(self, image_bytes: bytes) -> Dict[str, Any]:
        """
        Analyze one encoded image and return the result payload.

        Never raises for pipeline failures; they come back as
        `{"status": "error", "stage": ..., "message": ...}`.
        """

        try:
            return self.analyze(image_bytes).to_payload()
        except LesionKitError as exc:
            LOGGER.warning("Prediction failed at %s: %s", exc.stage, exc.message)
            return exc.to_payload()

    def __call__(self, image_bgr: np.ndarray) -> List[FinalPrediction]:
        predictions, _ = self.detect(image_bgr)
        return predictions


def _onnx_loader(model_path: Path, cfg: PipelineConfig, num_classes: int) -> Callable[[], Any]:
    def load() -> Any:
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        try:
            backend = OnnxRuntimeBackend(
                model_path,
                OnnxRuntimeBackendConfig(
                    providers=cfg.onnx_providers,
                    input_name=cfg.onnx_input_name,
                    output_name=cfg.onnx_output_name,
                ),
            )
        except FileNotFoundError as exc:
            raise ModelLoadError(f"model file not found: {exc}") from exc
        except ImportError as exc:
            raise ModelLoadError(str(exc)) from exc
        check_class_count(backend.output_shape, num_classes)
        return backend

    return load


def load_pipeline(
    cfg: PipelineConfig = PipelineConfig(),
    *,
    root: Optional[PathLike] = "auto",
    class_names: Optional[Sequence[str]] = None,
) -> LesionPipeline:
    """
    Create an ONNX Runtime backed pipeline. The model itself loads lazily on first use
    (or on `warmup()`).

    Class names come from `class_names`, else `cfg.class_names_path`, else the
    built-in skin-condition table.
    """

    if class_names is None:
        if cfg.class_names_path:
            class_names = load_class_names(resolve_path(cfg.class_names_path, root=root))
        else:
            class_names = DEFAULT_CLASS_NAMES

    model_path = resolve_path(cfg.model_path, root=root)
    handle = ModelHandle(_onnx_loader(model_path, cfg, len(class_names)))
    return LesionPipeline(handle, class_names=class_names, cfg=cfg)
