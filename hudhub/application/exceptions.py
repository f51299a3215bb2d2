"""
Core business exceptions for the HUD manager.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains.
"""

from pathlib import Path


class HudHubError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(HudHubError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(HudHubError):
    """Base class for errors related to external systems (network, disk)."""
    pass


class FetchError(InfrastructureError):
    """Base class for errors raised while resolving a package from a source."""
    pass


class DownloadError(FetchError):
    """Raised when an archive download fails."""
    pass


class InvalidUrlError(FetchError):
    """Raised when no archive file name can be derived from a URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL '{url}'")


class ScanError(FetchError):
    """Raised when the root of a package cannot be read."""
    pass


class ArchiveError(FetchError):
    """Base class for errors raised while unpacking an archive."""

    template = "Archive operation on '{path}' failed"

    def __init__(self, path: Path, reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        message = self.template.format(path=path)
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedArchiveTypeError(ArchiveError):
    template = "Unsupported archive type: '{path}'"


class ReadFailedError(ArchiveError):
    template = "Reading archive '{path}' failed"


class CreateDirectoryFailedError(ArchiveError):
    template = "Creating directory '{path}' failed"


class CreateFileFailedError(ArchiveError):
    template = "Writing file '{path}' failed"


class CopyFileFailedError(ArchiveError):
    template = "Copying file '{path}' failed"


class StateFileError(InfrastructureError):
    """Raised when the persisted state cannot be read or written."""
    pass


class UninstallError(InfrastructureError):
    """Raised when an installed HUD cannot be removed from disk."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        super().__init__(f"Failed to remove '{path}': {reason}")


# --- Domain/Business Logic Errors ---

class DomainError(HudHubError):
    """Base class for errors related to business logic failures."""
    pass


class HudMetadataError(DomainError):
    """Raised when a directory or file is not a valid HUD."""

    def __init__(self, path: Path, reason: str):
        self.path = Path(path)
        super().__init__(f"'{path}' is not a HUD: {reason}")


class HudNotFoundError(DomainError):
    """Raised when a named HUD is absent from a package or the registry."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Hud '{name}' not found")


class DeploymentError(DomainError):
    """Raised when a HUD cannot be moved or copied into place."""
    pass


class MissingSourceError(DomainError):
    """Raised when a HUD without a source is asked to be (re)installed."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Hud '{name}' has no source to install from")


# --- Programming Errors ---

class ContractViolationError(Exception):
    """
    Raised when a caller breaks a safety contract of the core.

    Deliberately not a HudHubError: nothing in the application catches it,
    so a violation always aborts the current operation.
    """
    pass
