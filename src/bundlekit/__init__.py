"""bundlekit: fetch, cache and install source bundles with reproducible lockfiles."""

__version__ = "0.1.0"

__all__ = ["__version__"]
