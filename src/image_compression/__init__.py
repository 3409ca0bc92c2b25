"""Event-triggered image compression for S3."""

__version__ = "0.1.0"
