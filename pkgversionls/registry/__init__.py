"""npm registry access."""
from .client import PackageMetadata, RegistryClient, validate_package_name

__all__ = ["PackageMetadata", "RegistryClient", "validate_package_name"]
