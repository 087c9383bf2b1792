"""
Writes analysis artifacts to disk. Kept out of the pipeline so rendering stays side-effect free.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from .types import AnalysisResult


@dataclass(frozen=True)
class AnalysisArtifacts:
    annotated_image: Path
    predictions_json: Path


def write_analysis(*, out_dir: Path, result: AnalysisResult, stem: str) -> AnalysisArtifacts:
    out_dir.mkdir(parents=True, exist_ok=True)

    image_path = out_dir / f"{stem}_annotated.jpg"
    image_path.write_bytes(result.annotated_image)

    json_path = out_dir / f"{stem}_predictions.json"
    json_path.write_text(
        json.dumps(result.to_payload(include_image=False), indent=2, sort_keys=True),
        encoding="utf-8",
    )
    return AnalysisArtifacts(annotated_image=image_path, predictions_json=json_path)
