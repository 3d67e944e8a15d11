# src/crossjdk/utils.py
import hashlib
import importlib.metadata
import os
import time
from pathlib import Path
from typing import Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from crossjdk.constants import (
    APP_NAME,
    CHECKSUM_ALGORITHM,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    HASH_CHUNK_SIZE,
    RETRY_STATUS_FORCELIST,
)
from crossjdk.log_utils import logger

Pathish = Union[str, Path]

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None


def get_app_version() -> str:
    """Return the installed crossjdk version, or `unknown` when it is not installed."""
    try:
        return importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `crossjdk/{version}`, where `{version}` is the installed package version or `unknown` if it cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        _USER_AGENT_CACHE = f"{APP_NAME}/{get_app_version()}"

    return _USER_AGENT_CACHE


def create_session(
    retries: int = DEFAULT_CONNECT_RETRIES,
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
) -> requests.Session:
    """
    Build a requests Session carrying the crossjdk User-Agent.

    When `retries` is positive, a urllib3 Retry adapter is mounted for http and
    https that retries connection, read and retryable status failures with
    exponential backoff. With `retries=0` the session performs exactly one attempt.
    """
    session = requests.Session()
    session.headers.update({"User-Agent": get_user_agent()})
    if retries > 0:
        retry_strategy: Retry = Retry(
            total=retries,
            connect=retries,
            read=retries,
            status=retries,
            backoff_factor=backoff_factor,
            status_forcelist=list(RETRY_STATUS_FORCELIST),
            allowed_methods=frozenset({"GET", "HEAD"}),
            raise_on_status=False,
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
    return session


def calculate_digest(
    file_path: Pathish, algorithm: str = CHECKSUM_ALGORITHM
) -> Optional[str]:
    """
    Compute the hex digest of a file with the given hashlib algorithm.

    The file is streamed in small chunks. Returns the lowercase hexadecimal digest,
    or None if the file cannot be opened or read.
    """
    try:
        digest = hashlib.new(algorithm)
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()
    except (IOError, OSError) as e:
        logger.debug(f"Error calculating {algorithm} for {file_path}: {e}")
        return None


def is_non_empty_file(file_path: Pathish) -> bool:
    """Return True when `file_path` is a readable regular file with at least one byte."""
    try:
        path = Path(file_path)
        return path.is_file() and os.access(path, os.R_OK) and path.stat().st_size > 0
    except OSError:
        return False


def remove_file(file_path: Pathish) -> bool:
    """
    Remove a file if present.

    Returns True when the file is gone afterwards; errors are logged, not raised.
    """
    try:
        Path(file_path).unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.error(f"Error removing {file_path}: {e}")
        return False


def temp_path_for(target: Path) -> Path:
    """Return a unique temporary sibling path for `target`."""
    return target.with_name(
        f"{target.name}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
    )


def download_file(
    session: requests.Session,
    url: str,
    download_path: Pathish,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> bool:
    """
    Stream a remote file to disk and atomically install it.

    The body is written verbatim to a temporary sibling of `download_path` and
    moved into place with os.replace only after the transfer completed, so a failed
    transfer never leaves a partial file at the destination.

    Parameters:
        session (requests.Session): Session used for the GET request.
        url (str): URL of the remote file.
        download_path (Pathish): Final destination path.
        timeout (float): Connect/read timeout in seconds.

    Returns:
        bool: `True` if the file was downloaded and installed, `False` otherwise.
    """
    target = Path(download_path)
    temp_path = temp_path_for(target)
    response = None
    try:
        logger.debug(f"Attempting to download {url} to temp path: {temp_path}")
        start_time = time.time()

        response = session.get(url, stream=True, timeout=timeout)
        logger.debug(
            f"Received HTTP response status code: {response.status_code} for URL: {url}"
        )
        response.raise_for_status()

        target.parent.mkdir(parents=True, exist_ok=True)
        downloaded_bytes = 0
        with open(temp_path, "wb") as file:
            for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                if chunk:
                    file.write(chunk)
                    downloaded_bytes += len(chunk)

        os.replace(temp_path, target)

        elapsed = time.time() - start_time
        logger.debug("Download elapsed time: %.2fs for %s", elapsed, url)
        file_size_mb = downloaded_bytes / (1024 * 1024)
        if file_size_mb >= 1.0:
            logger.info(f"Downloaded: {target.name} ({file_size_mb:.1f} MB)")
        else:
            logger.info(f"Downloaded: {target.name} ({downloaded_bytes} bytes)")
        return True
    except requests.exceptions.RequestException as e_req:
        logger.error(f"Network error downloading {url}: {e_req}")
    except (IOError, OSError) as e_io:
        logger.error(
            f"File I/O error downloading {url} (temp path: {temp_path}): {e_io}"
        )
    finally:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as e_rm:
                logger.warning(f"Error removing temporary file {temp_path}: {e_rm}")
        if response is not None:
            try:
                response.close()
            except Exception as e:  # noqa: BLE001 - closing must not mask the result
                logger.debug(f"Error closing HTTP response for {url}: {e}")
    return False
