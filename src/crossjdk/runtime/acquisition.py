"""
Runtime archive acquisition.

Makes sure each registry record's packed archive is present and valid on
local disk, downloading it only when verification fails. Every failure is
contained to its own archive: it is logged and reported, never raised.
"""

from typing import List, Optional

import requests

from crossjdk.constants import (
    CHECKSUM_ALGORITHM,
    DEFAULT_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
)
from crossjdk.log_utils import logger
from crossjdk.runtime.interfaces import (
    AcquisitionResult,
    AcquisitionStatus,
    RuntimeRecord,
)
from crossjdk.runtime.registry import VersionRegistry
from crossjdk.utils import (
    calculate_digest,
    create_session,
    download_file,
    is_non_empty_file,
    remove_file,
)


class AcquisitionEngine:
    """
    Verifies or downloads packed runtime archives.

    The HTTP session is created lazily so offline runs and fully verified caches
    never open one.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        retries: int = 0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = create_session(retries=self.retries)
        return self._session

    def url_for(self, record: RuntimeRecord) -> str:
        return f"{self.base_url}/{record.file_name}"

    def is_valid(self, record: RuntimeRecord) -> bool:
        """
        Check the local packed archive for `record`.

        With a checksum, the file's SHA-1 must match (case-insensitively). Without
        one, the file only has to exist and be non-empty.
        """
        path = record.local_path
        if record.checksum:
            if not path.is_file():
                return False
            actual = calculate_digest(path, CHECKSUM_ALGORITHM)
            if actual is None:
                return False
            if actual.lower() == record.checksum.lower():
                logger.debug(f"Checksum verified for {record.file_name}")
                return True
            logger.warning(
                f"Checksum mismatch for {record.file_name} - file may be corrupted"
            )
            return False
        return is_non_empty_file(path)

    def ensure_local(
        self, record: RuntimeRecord, offline: bool = False
    ) -> AcquisitionResult:
        """
        Make sure the packed archive for `record` is present locally.

        Offline runs return immediately without touching the file or the network. A
        file that passes verification is left as is. Otherwise any invalid leftover
        is removed and the archive is downloaded from `{base_url}/{file_name}`.

        Returns:
            AcquisitionResult: The outcome; download failures have status FAILED.
        """
        if offline:
            logger.debug(f"Offline; not checking {record.file_name}")
            return AcquisitionResult(record, AcquisitionStatus.SKIPPED_OFFLINE)

        if self.is_valid(record):
            logger.debug(f"Skipped: {record.file_name} (already present & verified)")
            return AcquisitionResult(record, AcquisitionStatus.VERIFIED)

        url = self.url_for(record)
        if record.local_path.exists() and not remove_file(record.local_path):
            return AcquisitionResult(
                record,
                AcquisitionStatus.FAILED,
                url=url,
                error_message=f"Unable to replace invalid file {record.local_path}",
            )

        logger.info(f"Downloading {record.file_name}")
        if not download_file(self.session, url, record.local_path, self.timeout):
            logger.error(f"Unable to download {url}")
            return AcquisitionResult(
                record,
                AcquisitionStatus.FAILED,
                url=url,
                error_message=f"Unable to download {url}",
            )

        if record.checksum and not self.is_valid(record):
            logger.error(
                f"Downloaded {record.file_name} from {url} does not match its checksum"
            )
            remove_file(record.local_path)
            return AcquisitionResult(
                record,
                AcquisitionStatus.FAILED,
                url=url,
                error_message="Checksum mismatch after download",
            )

        return AcquisitionResult(record, AcquisitionStatus.DOWNLOADED, url=url)

    def ensure_all(
        self, registry: VersionRegistry, offline: bool = False
    ) -> List[AcquisitionResult]:
        results = [self.ensure_local(record, offline) for record in registry.records()]
        failed = [r for r in results if r.status is AcquisitionStatus.FAILED]
        if failed:
            logger.warning(
                f"{len(failed)} of {len(results)} runtime archives could not be acquired"
            )
        return results
