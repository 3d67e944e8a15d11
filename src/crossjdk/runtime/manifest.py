"""
Manifest resolution for published runtime archives.

The remote side is a plain directory listing page, not an API. Archive names
are scraped from it line by line, so results are best effort: an empty set
is a valid answer and callers fall back to the seeded registry.
"""

from typing import Iterable, Optional, Set

import requests

from crossjdk.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    MANIFEST_ARCHIVE_SUFFIX,
    MANIFEST_DIR_MARKER,
)
from crossjdk.exceptions import ManifestError
from crossjdk.log_utils import logger
from crossjdk.utils import create_session


def extract_archive_name(
    line: str,
    marker: str = MANIFEST_DIR_MARKER,
    suffix: str = MANIFEST_ARCHIVE_SUFFIX,
) -> Optional[str]:
    """
    Pull an archive file name out of one listing line.

    The name starts one character past the last occurrence of `marker` (the
    path separator after the directory name) and runs through the first
    `suffix` found after that point.
    """
    marker_index = line.rfind(marker)
    if marker_index < 0:
        return None
    start_index = marker_index + len(marker) + 1
    suffix_index = line.find(suffix, start_index)
    if suffix_index < 0:
        return None
    return line[start_index : suffix_index + len(suffix)]


def extract_archive_names(lines: Iterable[str]) -> Set[str]:
    names: Set[str] = set()
    for line in lines:
        name = extract_archive_name(line)
        if name:
            logger.debug(f"Manifest entry: {name}")
            names.add(name)
    return names


class ManifestResolver:
    """
    Lists the packed runtime archives available under a base URL.

    A single GET is issued with no retries; transport and HTTP failures surface
    as ManifestError so the caller can decide how to degrade.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.session = session if session is not None else create_session(retries=0)
        self.timeout = timeout

    def list_available(self, base_url: str) -> Set[str]:
        """
        Fetch the listing at `base_url` and return the archive names found in it.

        Raises:
            ManifestError: If the listing cannot be fetched.
        """
        logger.debug(f"Sending 'GET' request to URL : {base_url}")
        response = None
        try:
            response = self.session.get(base_url, stream=True, timeout=self.timeout)
            logger.debug(f"Response Code : {response.status_code}")
            if response.status_code >= 400:
                raise ManifestError(
                    "Unable to fetch runtime manifest",
                    url=base_url,
                    details=f"HTTP {response.status_code}",
                )
            if not response.encoding:
                response.encoding = "utf-8"
            names = extract_archive_names(
                response.iter_lines(decode_unicode=True)
            )
        except requests.exceptions.RequestException as e:
            raise ManifestError(
                "Unable to fetch runtime manifest",
                url=base_url,
                details=str(e),
            ) from e
        finally:
            if response is not None:
                response.close()

        logger.debug(f"Found {len(names)} runtime archives at {base_url}")
        return names
