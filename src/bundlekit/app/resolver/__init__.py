"""Bundle reference resolution package."""

from .service import INDEX_FILENAME, DescriptorResolver, PackageIndex

__all__ = ["DescriptorResolver", "INDEX_FILENAME", "PackageIndex"]
