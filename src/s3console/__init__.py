"""s3console - HTTP bucket and object management for an S3-compatible store."""

__version__ = "0.1.0"
