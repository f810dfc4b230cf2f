"""Console log capture, storage and search."""
