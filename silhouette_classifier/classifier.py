"""
Silhouette classifier: match a candidate image's corner set against a
directory of labelled training images.

    classifier = SilhouetteClassifier(ClassifierConfig(training_dir="shapes"))
    result = classifier.classify("unknown.png")
    print(result.category, result.confidence, result.closest)

The training directory holds one subdirectory per category, each holding
images whose silhouettes belong to that category.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Any, Optional, Sequence, Union

from config import ClassifierConfig, DebugLevel, load_config_file
from errors import ClassifierError, ConfigurationError
from geometry.corner_models import Classification, CornerSet, TrainingIndex
from geometry.silhouette import SilhouetteBuilder
from integration.corner_extractor import CornerExtractor
from integration.image_processing.edge_detector import EdgeDetector
from integration.shape_matching import corner_matcher
from integration.shape_matching.corner_detector import CornerDetector
from integration.training_index import build_training_index
from utils.run_context import RunContext

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def check_candidate(candidate: Union[str, Path]) -> Path:
    """Return ``candidate`` as a Path, or raise ConfigurationError if it cannot be read."""
    path = Path(candidate)
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ConfigurationError(f"Cannot read candidate image: {path}")
    return path


class SilhouetteClassifier:
    """Classify images by silhouette against a training directory.

    The training index is built once, on construction, and never changes
    afterwards. Training corners are cached under ``config.work_dir``.
    """

    def __init__(
        self,
        config: ClassifierConfig,
        *,
        builder: Optional[SilhouetteBuilder] = None,
        edge_detector: Optional[EdgeDetector] = None,
        corner_detector: Optional[CornerDetector] = None,
        context: Optional[RunContext] = None,
    ) -> None:
        self.config = config
        self.context = context or RunContext(verbose=config.verbose)
        self.extractor = CornerExtractor(
            config,
            builder=builder,
            edge_detector=edge_detector,
            corner_detector=corner_detector,
            context=self.context,
        )
        with self.context.time_block("training_index"):
            self._training_index = build_training_index(
                config.training_dir,
                self.extractor,
                work_dir=config.work_dir,
                context=self.context,
                show_progress=config.verbose,
            )

    @classmethod
    def from_dirs(
        cls,
        training_dir: Union[str, Path],
        work_dir: Optional[Union[str, Path]] = None,
        **options: Any,
    ) -> "SilhouetteClassifier":
        """Build a classifier from paths plus ClassifierConfig keyword options."""
        detectors = {
            key: options.pop(key)
            for key in ("builder", "edge_detector", "corner_detector", "context")
            if key in options
        }
        config = ClassifierConfig(training_dir=training_dir, work_dir=work_dir, **options)
        return cls(config, **detectors)

    @property
    def training_index(self) -> TrainingIndex:
        return self._training_index

    def score(self, test: CornerSet, candidate: CornerSet) -> float:
        """Similarity of two corner sets under this classifier's match radius."""
        return corner_matcher.score(test, candidate, self.config.match_radius)

    def classify(self, candidate: Union[str, Path]) -> Classification:
        """
        Classify one image file.

        The candidate's corners are never cached. Returns an absent
        classification (category None) if the candidate has no corners or
        there are no training examples.

        Raises:
            ConfigurationError: the candidate path is missing or unreadable
            ImageDecodeError: the candidate cannot be rasterized
        """
        path = check_candidate(candidate)

        with self.context.time_block("classify"):
            corners = self.extractor.extract(path, cacheable=False)
            result = corner_matcher.best_match(
                corners, self._training_index, self.config.match_radius
            )
        self.context.info(
            "classified",
            file=path,
            category=result.category,
            confidence=f"{result.confidence:.4f}",
            closest=result.closest,
        )
        return result


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Classify an image by silhouette against a training directory."
    )
    parser.add_argument("training_dir", help="Directory with one subdirectory per category")
    parser.add_argument("candidate", help="Image file to classify")
    parser.add_argument(
        "work_dir",
        nargs="?",
        default=None,
        help="Writable directory for cache and debug files (default: training_dir)",
    )
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--image-size", type=int, default=None)
    parser.add_argument("--image-border", type=int, default=None)
    parser.add_argument("--match-radius", type=float, default=None)
    parser.add_argument(
        "--debug-level",
        type=int,
        choices=[level.value for level in DebugLevel],
        default=None,
        help="0 off, 1 composite, 2 + silhouette/edges, 3 + clipped subject",
    )
    parser.add_argument(
        "--force-refresh",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Ignore cached corner files and regenerate them",
    )
    parser.add_argument("--verbose", action="store_true", default=None)
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> ClassifierConfig:
    overrides = {
        "training_dir": args.training_dir,
        "work_dir": args.work_dir,
        "image_size": args.image_size,
        "image_border": args.image_border,
        "match_radius": args.match_radius,
        "debug_level": args.debug_level,
        "force_refresh": args.force_refresh,
        "verbose": args.verbose,
    }
    if args.config:
        return load_config_file(args.config, **overrides)
    return ClassifierConfig(**{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        config = _config_from_args(args)
        check_candidate(args.candidate)
        classifier = SilhouetteClassifier(config)
        result = classifier.classify(args.candidate)
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ClassifierError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    if result.is_absent:
        print(f"{args.candidate} could not be classified (no corners or no training data)")
        return EXIT_FAILURE

    print(
        f"{args.candidate} is type '{result.category}' "
        f"with confidence {result.confidence:.4f}"
    )
    print(f"closest match: {result.category}/{result.closest}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
