"""FastAPI application package for the Farmgate gateway."""

__version__ = "1.0.0"

from .logging import setup_logging

setup_logging()

__all__ = ["__version__", "setup_logging"]
