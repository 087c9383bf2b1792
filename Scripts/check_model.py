import argparse
import logging
from pathlib import Path

from lesion_kit import DEFAULT_CLASS_NAMES, load_class_names
from lesion_kit.backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig
from lesion_kit.decode import check_class_count, num_classes_for_channels
from lesion_kit.errors import ClassCountMismatchError


def main() -> int:
    parser = argparse.ArgumentParser(description="Check that the ONNX model loads and matches the class table.")
    parser.add_argument("--model", default="model/last.onnx", help="Path to the ONNX model.")
    parser.add_argument("--class-names", default=None, help="Class names file; built-in table when omitted.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    model_path = Path(args.model)
    if not model_path.exists():
        print(f"Missing model file: {model_path}")
        siblings = sorted(p.name for p in model_path.parent.glob("*")) if model_path.parent.exists() else []
        print(f"Files in {model_path.parent}: {siblings}")
        return 1

    class_names = load_class_names(args.class_names) if args.class_names else DEFAULT_CLASS_NAMES

    providers = None
    if args.onnx_providers:
        providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]
    backend = OnnxRuntimeBackend(model_path, OnnxRuntimeBackendConfig(providers=providers))

    print(f"Model: {model_path}")
    print(f"Input: {backend.input_name} {backend.input_shape}")
    print(f"Output: {backend.output_name} {backend.output_shape}")
    print(f"Providers in use: {list(backend.providers_in_use)}")
    print(f"Providers available: {list(backend.available_providers)}")

    output_shape = backend.output_shape
    if len(output_shape) == 3 and isinstance(output_shape[1], int):
        print(f"Decoded class count: {num_classes_for_channels(output_shape[1])}")
    else:
        print("Output channel dimension is dynamic; class count is checked per request.")

    try:
        check_class_count(output_shape, len(class_names))
    except ClassCountMismatchError as exc:
        print(f"ERROR: {exc}")
        return 1

    print(f"OK: {len(class_names)} class names")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
