"""Video catalog ingestion and playback resolution."""

__version__ = "0.1.0"

__all__ = ["__version__"]
