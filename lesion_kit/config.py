from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .nms import NMSConfig


@dataclass(frozen=True)
class PipelineConfig:
    model_path: str = "model/last.onnx"
    class_names_path: Optional[str] = None
    target_size: int = 640
    pad_color: Tuple[int, int, int] = (114, 114, 114)
    confidence_threshold: float = 0.80
    iou_threshold: float = 0.15
    min_box_area: float = 100.0
    merge_distance_threshold: float = 30.0
    class_agnostic_nms: bool = True
    max_detections: Optional[int] = None
    jpeg_quality: int = 90
    onnx_providers: Optional[Tuple[str, ...]] = None
    onnx_input_name: Optional[str] = None
    onnx_output_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.target_size < 32:
            raise ValueError("target_size must be >= 32")
        if len(self.pad_color) != 3 or any(not 0 <= c <= 255 for c in self.pad_color):
            raise ValueError("pad_color must be three integers in [0, 255]")
        if not 0.0 <= self.confidence_threshold < 1.0:
            raise ValueError("confidence_threshold must be in [0, 1)")
        if not 0.0 < self.iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in (0, 1]")
        if self.min_box_area <= 0:
            raise ValueError("min_box_area must be > 0")
        if self.merge_distance_threshold < 0:
            raise ValueError("merge_distance_threshold must be >= 0")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 if provided")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be in [1, 100]")

    def nms_config(self) -> NMSConfig:
        return NMSConfig(
            iou_threshold=self.iou_threshold,
            max_detections=self.max_detections,
            class_agnostic=self.class_agnostic_nms,
        )


_FLOAT_KEYS = {"confidence_threshold", "iou_threshold", "min_box_area", "merge_distance_threshold"}
_INT_KEYS = {"target_size", "jpeg_quality"}
_OPTIONAL_INT_KEYS = {"max_detections"}
_STR_KEYS = {"model_path"}
_OPTIONAL_STR_KEYS = {"class_names_path", "onnx_input_name", "onnx_output_name"}
_BOOL_KEYS = {"class_agnostic_nms"}


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def parse_pipeline_config(payload: Dict[str, Any], base_dir: Optional[Path] = None) -> PipelineConfig:
    """
    Build a PipelineConfig from a decoded JSON object. Missing keys keep their defaults.

    Relative `model_path` / `class_names_path` values resolve against `base_dir` when given.
    """

    allowed = (
        _FLOAT_KEYS | _INT_KEYS | _OPTIONAL_INT_KEYS | _STR_KEYS | _OPTIONAL_STR_KEYS | _BOOL_KEYS
        | {"pad_color", "onnx_providers"}
    )
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown pipeline config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in payload:
        value = payload[key]
        if key in _FLOAT_KEYS:
            kwargs[key] = _require_number(payload, key)
        elif key in _INT_KEYS:
            kwargs[key] = _require_int(payload, key)
        elif key in _OPTIONAL_INT_KEYS:
            kwargs[key] = None if value is None else _require_int(payload, key)
        elif key in _BOOL_KEYS:
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean")
            kwargs[key] = value
        elif key in _STR_KEYS or key in _OPTIONAL_STR_KEYS:
            if value is None and key in _OPTIONAL_STR_KEYS:
                kwargs[key] = None
                continue
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{key} must be a non-empty string")
            kwargs[key] = value.strip()
        elif key == "pad_color":
            if not isinstance(value, list) or len(value) != 3 or any(isinstance(c, bool) or not isinstance(c, int) for c in value):
                raise ValueError("pad_color must be a list of three integers")
            kwargs[key] = tuple(value)
        elif key == "onnx_providers":
            if value is None:
                kwargs[key] = None
            elif isinstance(value, list) and all(isinstance(item, str) and item.strip() for item in value):
                kwargs[key] = tuple(item.strip() for item in value)
            else:
                raise ValueError("onnx_providers must be a list of non-empty strings")

    if base_dir is not None:
        for key in ("model_path", "class_names_path"):
            value = kwargs.get(key)
            if value and not Path(value).is_absolute():
                kwargs[key] = str((base_dir / value).resolve())

    return PipelineConfig(**kwargs)


def load_pipeline_config(path: Path) -> PipelineConfig:
    if not path.exists():
        raise FileNotFoundError(f"Pipeline config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid pipeline config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Pipeline config must be a JSON object")
    return parse_pipeline_config(payload, base_dir=path.resolve().parent)
