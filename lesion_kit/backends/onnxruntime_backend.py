from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np


PathLike = Union[str, Path]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name/output_name: override auto-selected I/O names if needed
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    Minimal ONNX Runtime backend.

    Expects an NCHW float32 blob shaped (1, 3, S, S) and returns the selected
    output, shaped (1, C, N). `InferenceSession.run` is safe to call from
    several threads on one session.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        LOGGER.info("Loading ONNX model from %s", self.model_path)
        sess_opts = ort.SessionOptions()
        providers = list(cfg.providers) if cfg.providers is not None else None
        self.session = ort.InferenceSession(str(self.model_path), sess_options=sess_opts, providers=providers)

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        # If output_name not provided, pick first output.
        self.output_name = cfg.output_name or self.session.get_outputs()[0].name
        LOGGER.info(
            "ONNX session ready: input=%s output=%s providers=%s",
            self.input_name,
            self.output_name,
            ",".join(self.providers_in_use),
        )

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    @property
    def input_shape(self) -> List[Union[int, str, None]]:
        for node in self.session.get_inputs():
            if node.name == self.input_name:
                return list(node.shape)
        return []

    @property
    def output_shape(self) -> List[Union[int, str, None]]:
        """Declared output shape; dynamic axes come back as strings or None."""
        for node in self.session.get_outputs():
            if node.name == self.output_name:
                return list(node.shape)
        return []

    def infer(self, blob: np.ndarray) -> np.ndarray:
        outputs = self.session.run([self.output_name], {self.input_name: blob.astype(np.float32, copy=False)})
        return outputs[0]
