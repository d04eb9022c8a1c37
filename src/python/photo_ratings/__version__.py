"""Version information for photo-ratings."""

__version__ = "0.1.0"
