import time
from pathlib import Path

import platformdirs
import pytest
import requests

from crossjdk.runtime.interfaces import RuntimeRecord

_NETWORK_BLOCK_MSG = (
    "Network access is blocked during tests. Mock requests.* or Session.request."
)


def _block_network(*_args, **_kwargs):
    """
    Prevent network calls in tests by raising a RuntimeError.

    Raises:
        RuntimeError: with `_NETWORK_BLOCK_MSG` indicating that network access is blocked during tests.
    """
    raise RuntimeError(_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used to group the crossjdk test suite."""
    config.addinivalue_line("markers", "unit: fast tests of a single component")
    config.addinivalue_line(
        "markers", "integration: tests exercising several components together"
    )
    config.addinivalue_line(
        "markers", "configuration: tests of config and build file loading"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs at a temporary config directory and clear crossjdk environment overrides.
    """
    base = tmp_path_factory.mktemp("crossjdk")
    config_dir = base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )

    for name in ("CROSSJDK_OFFLINE", "CROSSJDK_BASE_URL", "CROSSJDK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing HTTP entry points with blocking callables.
    """
    requests.get = _block_network
    requests.post = _block_network
    requests.put = _block_network
    requests.delete = _block_network
    requests.head = _block_network
    requests.patch = _block_network
    requests.options = _block_network
    requests.Session.request = _block_network


@pytest.fixture(autouse=True)
def _mock_time_sleep(monkeypatch):
    """
    Make time.sleep instant for all tests to prevent delays.

    Retry/backoff paths use time.sleep(). Tests that require real timing behavior
    should monkeypatch sleep back to the real implementation.
    """
    monkeypatch.setattr(time, "sleep", lambda *_args, **_kwargs: None)


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def mock_response(mocker):
    """
    Provide a factory that creates configured mock requests.Response objects.

    The factory accepts a status code, body chunks for iter_content, text lines
    for iter_lines and an optional raise_for_status side effect.
    """

    def _create_response(status_code=200, chunks=None, lines=None, raise_error=None):
        response = mocker.MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.encoding = "utf-8"
        response.iter_content.return_value = iter(chunks or [])
        response.iter_lines.return_value = iter(lines or [])
        if raise_error is not None:
            response.raise_for_status.side_effect = raise_error
        return response

    return _create_response


@pytest.fixture
def mock_session(mocker):
    """Provide a mock requests.Session whose get() must be configured per test."""
    return mocker.MagicMock(spec=requests.Session)


# =============================================================================
# Runtime Archive Fixtures
# =============================================================================


@pytest.fixture
def runtime_dir(tmp_path) -> Path:
    """An empty runtime archive directory inside a temporary build directory."""
    path = tmp_path / "build" / "jdkRuntimes"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def class_like_bytes() -> bytes:
    """
    Bytes shaped loosely like class file contents.

    Mostly big-endian u2/u4 fields with small values plus some text, and a length
    that is not a multiple of the transposition stride.
    """
    body = bytearray(b"\xca\xfe\xba\xbe\x00\x00\x00\x34")
    for index in range(3000):
        body += index.to_bytes(2, "big")
        body += (index * 7).to_bytes(4, "big")
        if index % 50 == 0:
            body += b"java/lang/Object"
    body += b"\x01\x02\x03"
    return bytes(body)


@pytest.fixture
def make_record(runtime_dir):
    """Factory for RuntimeRecord objects rooted at `runtime_dir`."""

    def _make(name="openJdk8_rt.jar.pack.lzma", checksum=None):
        return RuntimeRecord(runtime_dir / name, checksum)

    return _make
