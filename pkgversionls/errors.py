"""Exception hierarchy for pkgversionls."""


class PackageVersionError(Exception):
    """Base exception for all pkgversionls errors."""
    pass


class MalformedDocumentError(PackageVersionError):
    """The document is not valid JSON (raised by the strict scan only)."""

    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} at offset {offset}")
        self.offset = offset


class InvalidPackageNameError(PackageVersionError):
    """Package name fails local validation; no request was made."""
    pass


class RegistryError(PackageVersionError):
    """Base exception for registry lookups."""
    pass


class PackageNotFoundError(RegistryError):
    """Registry answered definitively that the package is not available."""

    def __init__(self, package_name: str, status_code: int | None = None) -> None:
        detail = f" (HTTP {status_code})" if status_code else ""
        super().__init__(f"Package not found: {package_name}{detail}")
        self.package_name = package_name
        self.status_code = status_code


class TransientNetworkError(RegistryError):
    """Registry could not be reached after all retries."""
    pass


class ServiceClosedError(PackageVersionError):
    """Lookup requested after the cache was shut down."""
    pass
