"""Exception types raised by the silhouette classifier."""

from __future__ import annotations


class ClassifierError(Exception):
    """Base class for classifier failures."""


class ImageDecodeError(ClassifierError):
    """A source image could not be read or rasterized."""


class CacheMissError(ClassifierError):
    """No usable cache entry exists for an image; corners must be recomputed."""


class CacheIOError(ClassifierError):
    """A cache directory or file could not be created, read or written."""


class ConfigurationError(ClassifierError, ValueError):
    """Invalid settings, or a required input path is missing or unreadable."""
