"""Logging, progress, work-dir paths and the corner cache."""
