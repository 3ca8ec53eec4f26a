"""Command-line interface for the image archiver."""
