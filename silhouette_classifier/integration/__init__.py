"""Image processing, corner detection and the extraction pipeline."""
