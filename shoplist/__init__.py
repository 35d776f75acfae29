"""Shopping-list app backend packages."""

__version__ = "0.1.0"
