"""Keep a folder of Markdown notes in sync with an S3-compatible bucket."""

__version__ = "0.3.0"
