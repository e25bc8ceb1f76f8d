"""Change detection for remote assets via lightweight fingerprints."""

__version__ = "1.0.0"
