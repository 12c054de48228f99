#!/usr/bin/env python3
"""
Setup verification for the silhouette classifier.

Checks that every imaging dependency imports and that Pillow's C core and
OpenCV's contour tracing actually work in this interpreter.

Usage:
    python verify_setup.py
"""

from __future__ import annotations

import importlib
import sys
from typing import List, Tuple

# (import name, package name on the index)
REQUIRED: List[Tuple[str, str]] = [
    ("numpy", "numpy"),
    ("cv2", "opencv-python"),
    ("PIL", "Pillow"),
    ("scipy", "scipy"),
    ("tqdm", "tqdm"),
]


def verify_setup() -> bool:
    """Verify that all dependencies are installed and usable."""
    print("\n" + "=" * 70)
    print("Silhouette Classifier - Setup Verification")
    print("=" * 70 + "\n")
    print(f"OK: Python version: {sys.version}")
    print(f"OK: Python executable: {sys.executable}\n")

    errors: List[str] = []
    for module_name, package in REQUIRED:
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            errors.append(f"{package}: {e}")
            print(f"  FAIL: {package} not found")
            continue
        version = getattr(module, "__version__", "unknown")
        print(f"  OK: {package} {version} installed")

    if not errors:
        try:
            from PIL import _imaging  # noqa: F401
        except ImportError as e:
            errors.append(f"Pillow C extensions: {e}")
            print("  FAIL: Pillow C extensions not compatible with this Python")

    if not errors:
        import cv2
        import numpy as np

        mask = np.zeros((16, 16), dtype=np.uint8)
        mask[4:12, 4:12] = 255
        contours, _ = cv2.findContours(mask, cv2.RETR_LIST, cv2.CHAIN_APPROX_NONE)
        if len(contours) != 1:
            errors.append(f"cv2.findContours returned {len(contours)} contours")
            print("  FAIL: OpenCV contour tracing gave an unexpected result")
        else:
            print("  OK: OpenCV contour tracing works")

    print("\n" + "=" * 70)
    if errors:
        print("SETUP INCOMPLETE - Missing or incompatible dependencies")
        for error in errors:
            print(f"  - {error}")
        packages = " ".join(package for _, package in REQUIRED)
        print(f"\nInstall with:\n  {sys.executable} -m pip install {packages}")
    else:
        print("SETUP COMPLETE - All dependencies verified!")
    print("=" * 70 + "\n")

    return len(errors) == 0


if __name__ == "__main__":
    sys.exit(0 if verify_setup() else 1)
