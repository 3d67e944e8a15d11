"""
Custom exceptions for crossjdk.

Domain-specific exceptions give callers a way to tell a fatal configuration
problem apart from the per-archive failures the pipeline logs and skips.
"""


class CrossJdkError(Exception):
    """
    Base exception for all crossjdk errors.

    All custom exceptions in crossjdk inherit from this class so callers can
    catch every application-specific error at once.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(CrossJdkError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Invalid configuration values
    - Configuration or build file parsing errors
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when a configuration or build file cannot be read."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    pass


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(CrossJdkError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being fetched when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class ManifestError(DownloadError):
    """Exception raised when the runtime manifest listing cannot be fetched."""

    pass


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(CrossJdkError):
    """
    Exception raised for file system-related errors.

    Attributes:
        path: The file path that caused the error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(CrossJdkError):
    """
    Exception raised when validation fails.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class VersionError(ValidationError):
    """Exception raised when a bytecode or toolchain version cannot be parsed."""

    pass


# =============================================================================
# Archive Errors
# =============================================================================


class ArchiveError(CrossJdkError):
    """
    Exception raised for runtime archive errors.

    Attributes:
        archive_path: Path to the problematic archive.
    """

    def __init__(
        self,
        message: str,
        archive_path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path


class CorruptedArchiveError(ArchiveError):
    """Exception raised when a packed stream is truncated or malformed."""

    pass


class NoRuntimeArchivesError(ArchiveError):
    """
    Exception raised when the runtime directory holds no raw or packed archives.

    This is the only pipeline failure that aborts the build: without any
    archive there is nothing to build a bootstrap classpath from.
    """

    pass
