"""kodosync - incremental upload of a static site export to Kodo object storage."""

__version__ = "0.1.0"
