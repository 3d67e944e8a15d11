"""
Tests for the crossjdk exception hierarchy.

Covers:
- Base CrossJdkError and error message formatting
- Configuration errors (ConfigurationError, ConfigFileError, ConfigValidationError)
- Download errors (DownloadError, ManifestError)
- File system, validation and archive errors
"""

import pytest

from crossjdk.exceptions import (
    ArchiveError,
    ConfigFileError,
    ConfigurationError,
    ConfigValidationError,
    CorruptedArchiveError,
    CrossJdkError,
    DownloadError,
    FileSystemError,
    ManifestError,
    NoRuntimeArchivesError,
    ValidationError,
    VersionError,
)


@pytest.mark.unit
class TestCrossJdkError:
    """Test base CrossJdkError exception."""

    def test_basic_message(self):
        error = CrossJdkError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.details is None

    def test_message_with_details(self):
        error = CrossJdkError("Operation failed", details="Connection timeout")
        assert str(error) == "Operation failed - Connection timeout"
        assert error.details == "Connection timeout"

    def test_inheritance(self):
        assert isinstance(CrossJdkError("x"), Exception)


@pytest.mark.unit
class TestHierarchy:
    @pytest.mark.parametrize(
        "cls,parent",
        [
            (ConfigurationError, CrossJdkError),
            (ConfigFileError, ConfigurationError),
            (ConfigValidationError, ConfigurationError),
            (DownloadError, CrossJdkError),
            (ManifestError, DownloadError),
            (FileSystemError, CrossJdkError),
            (ValidationError, CrossJdkError),
            (VersionError, ValidationError),
            (ArchiveError, CrossJdkError),
            (CorruptedArchiveError, ArchiveError),
            (NoRuntimeArchivesError, ArchiveError),
        ],
    )
    def test_subclass(self, cls, parent):
        assert issubclass(cls, parent)

    def test_catch_all_with_base(self):
        with pytest.raises(CrossJdkError):
            raise NoRuntimeArchivesError("none")


@pytest.mark.unit
class TestAttributes:
    def test_manifest_error_url(self):
        error = ManifestError("Unable to fetch", url="https://x", details="HTTP 500")
        assert error.url == "https://x"
        assert str(error) == "Unable to fetch - HTTP 500"

    def test_file_system_error_path(self):
        error = FileSystemError("Unable to create", path="/tmp/x")
        assert error.path == "/tmp/x"
        assert str(error) == "Unable to create"

    def test_version_error_fields(self):
        error = VersionError("Invalid Java version", field="version", value="abc")
        assert error.field == "version"
        assert error.value == "abc"

    def test_archive_error_path(self):
        error = CorruptedArchiveError(
            "Bad stream", archive_path="a.jar.pack.lzma", details="magic"
        )
        assert error.archive_path == "a.jar.pack.lzma"
        assert str(error) == "Bad stream - magic"
