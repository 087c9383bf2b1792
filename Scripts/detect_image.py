import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path

from lesion_kit import LesionKitError, PipelineConfig, load_pipeline, load_pipeline_config
from lesion_kit.output import write_analysis
from lesion_kit.visualize import format_label


def build_config(args: argparse.Namespace) -> PipelineConfig:
    cfg = load_pipeline_config(Path(args.config)) if args.config else PipelineConfig()

    # Only flags given on the command line override the config file.
    overrides = {
        "model_path": args.model,
        "class_names_path": args.class_names,
        "target_size": args.imgsz,
        "confidence_threshold": args.conf,
        "iou_threshold": args.iou,
        "min_box_area": args.min_area,
        "merge_distance_threshold": args.merge_distance,
    }
    if args.onnx_providers:
        overrides["onnx_providers"] = tuple(p.strip() for p in str(args.onnx_providers).split(",") if p.strip())
    if args.per_class_nms:
        overrides["class_agnostic_nms"] = False
    return replace(cfg, **{k: v for k, v in overrides.items() if v is not None})


def main() -> int:
    parser = argparse.ArgumentParser(description="Detect skin lesions in one image and write an annotated copy.")
    parser.add_argument("--image", required=True, help="Path to an input JPEG/PNG image.")
    parser.add_argument("--config", default=None, help="Optional pipeline config JSON.")
    parser.add_argument("--model", default=None, help="Path to the ONNX model (default: model/last.onnx).")
    parser.add_argument("--class-names", default=None, help="Class names file (.yaml names mapping, .json or .txt).")
    parser.add_argument("--imgsz", type=int, default=None, help="Letterbox input size (e.g., 640).")
    parser.add_argument("--conf", type=float, default=None, help="Confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--min-area", type=float, default=None, help="Minimum box area in letterboxed pixels.")
    parser.add_argument("--merge-distance", type=float, default=None, help="Center distance for merging boxes.")
    parser.add_argument("--per-class-nms", action="store_true", help="Run NMS separately per class.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--out-dir", default=None, help="Directory for the annotated image and predictions JSON.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    image_path = Path(args.image)
    if not image_path.exists():
        raise FileNotFoundError(f"Could not read image at path: {image_path}")

    pipeline = load_pipeline(build_config(args))
    try:
        result = pipeline.analyze(image_path.read_bytes())
    except LesionKitError as exc:
        print(f"ERROR: {exc.to_payload()['message']}")
        return 1

    for pred in result.predictions:
        print(
            f"{format_label(pred)} center=({pred.x:.1f}, {pred.y:.1f}) size=({pred.w:.1f}, {pred.h:.1f})"
        )

    if args.out_dir:
        artifacts = write_analysis(out_dir=Path(args.out_dir), result=result, stem=image_path.stem)
        print(f"Wrote annotated image: {artifacts.annotated_image}")
        print(f"Wrote predictions: {artifacts.predictions_json}")
    else:
        print(json.dumps(result.to_payload(include_image=False), indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
