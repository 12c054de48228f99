#!/usr/bin/env python3
"""
Silhouette Classifier Test Runner - runs every unittest suite plus a dependency check.

Usage:
    python test_runner.py
    python test_runner.py --verbose
    python test_runner.py --quick        # Skip suites that run the full image pipeline
    python test_runner.py --no-progress

Exit codes:
    0: All required tests passed
    1: One or more tests failed
    2: Test runner error (unexpected crash)
"""

from __future__ import annotations

import sys
import traceback
import unittest
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Add the project directory to the path for test module imports
sys.path.insert(0, str(Path(__file__).parent))

from utils.progress import iter_progress, progress_print

PURE_PYTHON_TESTS: List[Tuple[str, str]] = [
    ("run_context", "utils.test_run_context"),
    ("feature_cache", "utils.test_feature_cache"),
    ("config_defaults", "test_config_defaults"),
    ("config_validation", "test_config_validation"),
    ("corner_matcher", "test_corner_matcher"),
    ("training_index", "test_training_index"),
]

IMAGE_TESTS: List[Tuple[str, str]] = [
    ("image_ops", "test_image_ops"),
    ("silhouette_extraction", "test_silhouette_extraction"),
    ("corner_detection", "test_corner_detection"),
    ("corner_extractor", "test_corner_extractor"),
]

PIPELINE_TESTS: List[Tuple[str, str]] = [
    ("classifier", "test_classifier"),
]


def run_unittest_modules(
    modules: List[Tuple[str, str]],
    verbose: bool = False,
    progress: bool = False,
) -> Dict[str, bool]:
    """Run unittest modules by dotted name."""
    results: Dict[str, bool] = {}
    for label, module_name in iter_progress(
        modules,
        desc="tests",
        total=len(modules),
        enabled=progress and len(modules) > 1,
    ):
        progress_print("\n" + "-" * 70, enabled=progress)
        progress_print(f"[Suite] {label} ({module_name})", enabled=progress)
        progress_print("-" * 70, enabled=progress)
        try:
            suite = unittest.defaultTestLoader.loadTestsFromName(module_name)
            if suite.countTestCases() == 0:
                progress_print(
                    f"WARN: No tests discovered in {module_name}", enabled=progress
                )
                results[label] = False
                continue
            runner = unittest.TextTestRunner(verbosity=2 if verbose else 1)
            result = runner.run(suite)
            results[label] = result.wasSuccessful()
        except Exception as e:
            progress_print(f"FAIL: Test crashed: {e}", enabled=progress)
            if verbose:
                traceback.print_exc()
            results[label] = False
    return results


def run_test_suite(
    verbose: bool = False, quick: bool = False, progress: bool = False
) -> Dict[str, Optional[bool]]:
    """
    Run the complete test suite.

    Args:
        verbose: Enable verbose output
        quick: Skip the end-to-end pipeline suites

    Returns:
        dict: Test results with pass/fail status (None for skipped)
    """
    results: Dict[str, Optional[bool]] = {}

    print("\n" + "=" * 70)
    print("SILHOUETTE CLASSIFIER - TEST SUITE")
    print("=" * 70)

    print("\n" + "-" * 70)
    print("[1/4] Dependency Check")
    print("-" * 70)
    try:
        from verify_setup import verify_setup

        results["dependencies"] = verify_setup()
    except Exception as e:
        print(f"FAIL: Test crashed: {e}")
        if verbose:
            traceback.print_exc()
        results["dependencies"] = False

    print("\n" + "-" * 70)
    print("[2/4] Pure Python Tests")
    print("-" * 70)
    results.update(
        run_unittest_modules(PURE_PYTHON_TESTS, verbose=verbose, progress=progress)
    )

    print("\n" + "-" * 70)
    print("[3/4] Image Processing Tests")
    print("-" * 70)
    results.update(run_unittest_modules(IMAGE_TESTS, verbose=verbose, progress=progress))

    print("\n" + "-" * 70)
    print("[4/4] Classifier Pipeline Tests")
    print("-" * 70)
    if quick:
        print("SKIPPED - quick mode")
        for label, _ in PIPELINE_TESTS:
            results[label] = None
    else:
        results.update(
            run_unittest_modules(PIPELINE_TESTS, verbose=verbose, progress=progress)
        )

    return results


def print_summary(results: Dict[str, Optional[bool]]) -> int:
    """Print test summary and return exit code."""
    print("\n" + "=" * 70)
    print("TEST SUMMARY")
    print("=" * 70)

    passed = failed = skipped = 0
    for test_name, result in results.items():
        if result is True:
            status = "PASS"
            passed += 1
        elif result is False:
            status = "FAIL"
            failed += 1
        else:
            status = "- SKIP"
            skipped += 1
        print(f"  {test_name:.<50} {status}")

    print("=" * 70)
    print(f"\nResults: {passed} passed, {failed} failed, {skipped} skipped")

    if failed > 0:
        print("\nTESTS FAILED")
        print("=" * 70)
        return 1
    print("\nALL TESTS PASSED")
    print("=" * 70)
    return 0


def main() -> None:
    """Main entry point for test runner."""
    verbose = "--verbose" in sys.argv or "-v" in sys.argv
    quick = "--quick" in sys.argv or "-q" in sys.argv
    progress = "--no-progress" not in sys.argv

    if "--help" in sys.argv or "-h" in sys.argv:
        print(__doc__)
        sys.exit(0)

    try:
        results = run_test_suite(verbose=verbose, quick=quick, progress=progress)
    except Exception:
        traceback.print_exc()
        sys.exit(2)
    sys.exit(print_summary(results))


if __name__ == "__main__":
    main()
