"""Content ingestion and narrative signal pipeline."""

__version__ = "0.1.0"
