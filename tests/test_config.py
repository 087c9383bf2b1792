import json
import tempfile
import unittest
from pathlib import Path

from lesion_kit.config import PipelineConfig, load_pipeline_config, parse_pipeline_config
from lesion_kit.metadata import DEFAULT_CLASS_NAMES, load_class_names


class _TmpDirCase(unittest.TestCase):
    def _write(self, name: str, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / name
        path.write_text(text, encoding="utf-8")
        return path


class TestPipelineConfig(_TmpDirCase):
    def test_defaults(self) -> None:
        cfg = PipelineConfig()
        self.assertEqual(cfg.target_size, 640)
        self.assertEqual(cfg.confidence_threshold, 0.80)
        self.assertEqual(cfg.iou_threshold, 0.15)
        self.assertEqual(cfg.min_box_area, 100.0)
        self.assertEqual(cfg.merge_distance_threshold, 30.0)
        self.assertEqual(cfg.pad_color, (114, 114, 114))
        self.assertTrue(cfg.nms_config().class_agnostic)

    def test_load_ok(self) -> None:
        path = self._write(
            "pipeline.json",
            json.dumps(
                {
                    "model_path": "weights/last.onnx",
                    "confidence_threshold": 0.5,
                    "iou_threshold": 0.3,
                    "min_box_area": 64,
                    "merge_distance_threshold": 12,
                    "target_size": 320,
                    "pad_color": [0, 0, 0],
                    "class_agnostic_nms": False,
                    "onnx_providers": ["CPUExecutionProvider"],
                }
            ),
        )
        cfg = load_pipeline_config(path)
        self.assertEqual(cfg.confidence_threshold, 0.5)
        self.assertEqual(cfg.target_size, 320)
        self.assertEqual(cfg.pad_color, (0, 0, 0))
        self.assertEqual(cfg.onnx_providers, ("CPUExecutionProvider",))
        self.assertFalse(cfg.nms_config().class_agnostic)
        # Relative paths resolve next to the config file.
        self.assertEqual(Path(cfg.model_path), (path.parent / "weights/last.onnx").resolve())

    def test_unknown_keys_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_pipeline_config({"confidence_threshold": 0.5, "extra": 1})

    def test_wrong_types_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_pipeline_config({"target_size": 640.5})
        with self.assertRaises(ValueError):
            parse_pipeline_config({"iou_threshold": True})
        with self.assertRaises(ValueError):
            parse_pipeline_config({"pad_color": [1, 2]})

    def test_out_of_range_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PipelineConfig(confidence_threshold=1.5)
        with self.assertRaises(ValueError):
            PipelineConfig(iou_threshold=0.0)
        with self.assertRaises(ValueError):
            PipelineConfig(min_box_area=0)
        with self.assertRaises(ValueError):
            PipelineConfig(jpeg_quality=0)

    def test_invalid_json(self) -> None:
        path = self._write("pipeline.json", "{not json")
        with self.assertRaises(ValueError):
            load_pipeline_config(path)


class TestClassNames(_TmpDirCase):
    def test_default_table(self) -> None:
        self.assertEqual(len(DEFAULT_CLASS_NAMES), 19)
        self.assertEqual(DEFAULT_CLASS_NAMES[11], "Melanoma")

    def test_shipped_metadata_matches_default_table(self) -> None:
        path = Path(__file__).resolve().parents[1] / "model" / "metadata.yaml"
        self.assertEqual(load_class_names(path), DEFAULT_CLASS_NAMES)

    def test_yaml_names_mapping(self) -> None:
        path = self._write("metadata.yaml", "task: detect\nnames:\n  0: Acne\n  1: 'Eczema'\n  2: \"Nevus\"\n")
        self.assertEqual(load_class_names(path), ["Acne", "Eczema", "Nevus"])

    def test_json_and_text(self) -> None:
        self.assertEqual(load_class_names(self._write("names.json", '["a", "b"]')), ["a", "b"])
        self.assertEqual(load_class_names(self._write("ids.json", '{"1": "b", "0": "a"}')), ["a", "b"])
        self.assertEqual(load_class_names(self._write("names.txt", "a\n\n# comment\nb\n")), ["a", "b"])

    def test_non_contiguous_ids_rejected(self) -> None:
        path = self._write("metadata.yaml", "names:\n  0: a\n  2: c\n")
        with self.assertRaises(ValueError):
            load_class_names(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_class_names("/nonexistent/names.txt")


if __name__ == "__main__":
    unittest.main()
