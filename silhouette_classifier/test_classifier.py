"""End-to-end tests for SilhouetteClassifier and its command line."""

from __future__ import annotations

import contextlib
import io
import os
from pathlib import Path
import tempfile
import unittest

import numpy as np
from PIL import Image, ImageDraw

from classifier import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_OK,
    SilhouetteClassifier,
    main,
)
from config import ClassifierConfig
from errors import ConfigurationError
from utils.feature_cache import dump_corners

OLD_NS = 1_600_000_000 * 1_000_000_000

SQUARE = ((20, 20), (180, 20), (180, 180), (20, 180))
TRIANGLE = ((100, 20), (20, 180), (180, 180))
CANDIDATE = ((22, 18), (178, 22), (182, 178), (18, 182))


class StubCornerDetector:
    def __init__(self, corners) -> None:
        self.corners = corners
        self.calls = 0

    def process(self, edge_mask):
        self.calls += 1
        return self.corners


def _save(image: Image.Image, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)
    os.utime(path, ns=(OLD_NS, OLD_NS))
    return path


def _square(size: int, lo: int, hi: int, background=None) -> Image.Image:
    if background is None:
        image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        fill = (0, 0, 0, 255)
    else:
        image = Image.new("RGB", (size, size), background)
        fill = (0, 0, 0)
    ImageDraw.Draw(image).rectangle([lo, lo, hi - 1, hi - 1], fill=fill)
    return image


def _triangle(size: int = 100) -> Image.Image:
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    ImageDraw.Draw(image).polygon([(50, 20), (20, 80), (80, 80)], fill=(0, 0, 0, 255))
    return image


def _seed_cache(work: Path, category: str, name: str, corners) -> None:
    target = work / category / f"{Path(name).stem}.corners"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(dump_corners(corners), encoding="utf-8")


class TestClassifierWithSeededCache(unittest.TestCase):
    """Training corners come from fresh cache files; only the candidate is processed."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.training = root / "train"
        self.work = root / "work"
        _save(_square(100, 20, 80), self.training / "square" / "sq1.png")
        _save(_triangle(), self.training / "triangle" / "tri1.png")
        _seed_cache(self.work, "square", "sq1.png", SQUARE)
        _seed_cache(self.work, "triangle", "tri1.png", TRIANGLE)
        self.candidate = _save(_square(60, 12, 48), root / "candidate.png")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _classifier(self, detector, **options) -> SilhouetteClassifier:
        return SilhouetteClassifier.from_dirs(
            self.training, self.work, corner_detector=detector, **options
        )

    def test_training_index_loaded_from_cache(self) -> None:
        detector = StubCornerDetector(CANDIDATE)
        classifier = self._classifier(detector)
        self.assertEqual(detector.calls, 0)
        self.assertEqual(list(classifier.training_index), ["square", "triangle"])
        self.assertEqual(classifier.training_index["square"][0].corners, SQUARE)

    def test_square_candidate(self) -> None:
        detector = StubCornerDetector(CANDIDATE)
        result = self._classifier(detector).classify(self.candidate)
        self.assertEqual(result.category, "square")
        self.assertEqual(result.closest, "sq1.png")
        # every candidate corner is sqrt(8) from a square corner
        self.assertAlmostEqual(result.confidence, 0.92)
        self.assertEqual(detector.calls, 1)
        self.assertFalse((self.work / "candidate.corners").exists())

    def test_classify_is_deterministic(self) -> None:
        classifier = self._classifier(StubCornerDetector(CANDIDATE))
        self.assertEqual(
            classifier.classify(self.candidate), classifier.classify(self.candidate)
        )

    def test_score_uses_match_radius(self) -> None:
        classifier = self._classifier(StubCornerDetector(()), match_radius=4.0)
        self.assertEqual(classifier.config.match_radius, 4.0)
        self.assertAlmostEqual(classifier.score(((0, 0),), ((2, 0),)), 0.75)

    def test_no_candidate_corners_is_absent(self) -> None:
        result = self._classifier(StubCornerDetector(())).classify(self.candidate)
        self.assertTrue(result.is_absent)
        self.assertEqual(result.confidence, 0.0)

    def test_missing_candidate(self) -> None:
        classifier = self._classifier(StubCornerDetector(CANDIDATE))
        with self.assertRaises(ConfigurationError):
            classifier.classify(Path(self._tmp.name) / "absent.png")

    def test_identical_training_sets_prefer_first_category(self) -> None:
        _save(_square(100, 20, 80), self.training / "box" / "b1.png")
        _seed_cache(self.work, "box", "b1.png", SQUARE)
        result = self._classifier(StubCornerDetector(SQUARE)).classify(self.candidate)
        self.assertEqual((result.category, result.closest), ("box", "b1.png"))
        self.assertEqual(result.confidence, 1.0)

    def test_missing_training_dir(self) -> None:
        with self.assertRaises(ConfigurationError):
            SilhouetteClassifier(
                ClassifierConfig(training_dir=Path(self._tmp.name) / "absent")
            )


class TestClassifierPipeline(unittest.TestCase):
    """Full pipeline with the default detectors."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.training = root / "train"
        self.work = root / "work"
        _save(_square(100, 20, 80), self.training / "square" / "sq1.png")
        _save(_triangle(), self.training / "triangle" / "tri1.png")
        self.candidate = _save(
            _square(60, 12, 48, background=(255, 255, 255)), root / "candidate.png"
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_square_is_recognised(self) -> None:
        classifier = SilhouetteClassifier.from_dirs(self.training, self.work)
        result = classifier.classify(self.candidate)
        self.assertEqual(result.category, "square")
        self.assertEqual(result.closest, "sq1.png")
        self.assertGreater(result.confidence, 0.5)
        self.assertTrue((self.work / "square" / "sq1.corners").is_file())
        self.assertTrue((self.work / "triangle" / "tri1.corners").is_file())

    def test_training_dir_doubles_as_work_dir(self) -> None:
        SilhouetteClassifier.from_dirs(self.training)
        again = SilhouetteClassifier.from_dirs(self.training)
        self.assertTrue((self.training / "square" / "sq1.corners").is_file())
        self.assertEqual(len(again.training_index["square"]), 1)

    def test_main_prints_classification(self) -> None:
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            code = main([str(self.training), str(self.candidate), str(self.work)])
        self.assertEqual(code, EXIT_OK)
        output = stdout.getvalue()
        self.assertIn("is type 'square' with confidence", output)
        self.assertIn("closest match: square/sq1.png", output)


class TestCommandLine(unittest.TestCase):
    def test_missing_training_dir_exit_code(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            stderr = io.StringIO()
            with contextlib.redirect_stderr(stderr):
                code = main([os.path.join(tmpdir, "absent"), os.path.join(tmpdir, "c.png")])
        self.assertEqual(code, EXIT_CONFIG_ERROR)
        self.assertIn("error:", stderr.getvalue())

    def test_missing_candidate_exit_code(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "train" / "square").mkdir(parents=True)
            with contextlib.redirect_stderr(io.StringIO()):
                code = main([os.path.join(tmpdir, "train"), os.path.join(tmpdir, "c.png")])
        self.assertEqual(code, EXIT_CONFIG_ERROR)

    def test_missing_candidate_checked_before_training_scan(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "train" / "square").mkdir(parents=True)
            (root / "train" / "square" / "broken.png").write_bytes(b"not an image")
            stderr = io.StringIO()
            with contextlib.redirect_stderr(stderr):
                code = main([str(root / "train"), str(root / "c.png")])
            self.assertFalse((root / "train" / "square" / "broken.corners").exists())
        self.assertEqual(code, EXIT_CONFIG_ERROR)
        self.assertIn("Cannot read candidate image", stderr.getvalue())

    def test_empty_training_set_exit_code(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "train" / "square").mkdir(parents=True)
            candidate = _save(_square(60, 12, 48), root / "c.png")
            with contextlib.redirect_stdout(io.StringIO()):
                code = main([str(root / "train"), str(candidate)])
        self.assertEqual(code, EXIT_FAILURE)

    def test_invalid_option_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "train").mkdir()
            with contextlib.redirect_stderr(io.StringIO()):
                code = main(
                    [os.path.join(tmpdir, "train"), "c.png", "--match-radius", "-1"]
                )
                with self.assertRaises(SystemExit):
                    main([os.path.join(tmpdir, "train"), "c.png", "--debug-level", "9"])
        self.assertEqual(code, EXIT_CONFIG_ERROR)

    def test_config_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "train").mkdir()
            config_path = root / "config.json"
            config_path.write_text('{"training_dir": "ignored", "image_size": 2}', encoding="utf-8")
            with contextlib.redirect_stderr(io.StringIO()):
                code = main([str(root / "train"), "c.png", "--config", str(config_path)])
        self.assertEqual(code, EXIT_CONFIG_ERROR)


if __name__ == "__main__":
    unittest.main()
