"""Bundle acquisition package."""

from .service import BundleAcquirer

__all__ = ["BundleAcquirer"]
