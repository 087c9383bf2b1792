from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Union

PathLike = Union[str, Path]

# Label order of the skin-condition detector (last.onnx).
DEFAULT_CLASS_NAMES: List[str] = [
    "Acne",
    "Basal-Cell-Carcinoma",
    "Darier's-Disease",
    "Eczema",
    "Epidermolysis-Bullosa-Pruriginosa",
    "Hailey-Hailey-Disease",
    "Capture-d-ecran",
    "Impetigo",
    "LEISHMANIOSE",
    "Lichen",
    "Lupus-Erythematosus-Chronicus-Discoides",
    "Melanoma",
    "Molluscum-Contagiosum",
    "Nevus",
    "Normal",
    "Porokeratosis-Actinic",
    "Psoriasis",
    "Tinea-Corporis",
    "Tungiasis",
]


def _parse_names_mapping(text: str) -> Dict[int, str]:
    """
    Parse the lightweight `metadata.yaml` format:

        names:
          0: Acne
          1: Eczema
          ...

    This function intentionally avoids adding a PyYAML dependency.
    """

    names: Dict[int, str] = {}
    in_names = False

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line == "names:":
            in_names = True
            continue
        if not in_names:
            continue

        # Parse "id: label"
        if ":" not in line:
            continue
        left, right = line.split(":", 1)
        left = left.strip()
        right = right.strip().strip("'").strip('"')
        if not left.isdigit():
            continue
        names[int(left)] = right

    return names


def _mapping_to_list(names: Dict[int, str], source: Path) -> List[str]:
    if not names:
        raise ValueError(f"No class names found in {source}")
    expected = list(range(len(names)))
    if sorted(names) != expected:
        raise ValueError(f"Class ids in {source} must be contiguous from 0, got {sorted(names)}")
    return [names[i] for i in expected]


def load_class_names(path: PathLike) -> List[str]:
    """
    Load an ordered class-name table.

    Supported formats, chosen by extension:
    - `.yaml` / `.yml`: `names:` mapping of `id: label`
    - `.json`: list of names, or an object of `"id": name`
    - anything else: one name per line
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Class names file not found: {p}")
    text = p.read_text(encoding="utf-8")
    suffix = p.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        return _mapping_to_list(_parse_names_mapping(text), p)

    if suffix == ".json":
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid class names JSON: {p}") from exc
        if isinstance(payload, list) and all(isinstance(item, str) for item in payload):
            if not payload:
                raise ValueError(f"No class names found in {p}")
            return list(payload)
        if isinstance(payload, dict):
            try:
                mapping = {int(k): str(v) for k, v in payload.items()}
            except ValueError as exc:
                raise ValueError(f"Class name keys in {p} must be integers") from exc
            return _mapping_to_list(mapping, p)
        raise ValueError(f"Class names JSON must be a list of strings or an id->name object: {p}")

    names = [line.strip() for line in text.splitlines() if line.strip() and not line.strip().startswith("#")]
    if not names:
        raise ValueError(f"No class names found in {p}")
    return names
