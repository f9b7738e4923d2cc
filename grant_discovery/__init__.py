"""Grant discovery sync pipeline."""

__version__ = "0.1.0"
