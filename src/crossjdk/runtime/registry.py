"""
Version registry for runtime archives.

Maps each VersionKey to the RuntimeRecord of its packed archive. A registry is
built fresh for every setup pass: seeded with the archives whose checksums
are known, then extended with anything the manifest listed that the seed
does not already cover.
"""

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from crossjdk.constants import (
    RUNTIME_NAME_PREFIX,
    RUNTIME_NAME_SEPARATOR,
    SEED_RUNTIMES,
)
from crossjdk.exceptions import VersionError
from crossjdk.log_utils import logger
from crossjdk.runtime.interfaces import Pathish, RuntimeRecord, VersionKey
from crossjdk.runtime.version import normalize_version


def parse_version_from_name(file_name: str) -> VersionKey:
    """
    Parse the version out of a runtime archive name like `openJdk9_rt.jar.pack.lzma`.

    The version is the text between the fixed `openJdk` prefix and the first
    `_` separator.

    Raises:
        VersionError: If the name does not follow the convention.
    """
    if not file_name.startswith(RUNTIME_NAME_PREFIX):
        raise VersionError(
            "Unexpected runtime archive name", field="file_name", value=file_name
        )
    end = file_name.find(RUNTIME_NAME_SEPARATOR, len(RUNTIME_NAME_PREFIX))
    if end < 0:
        raise VersionError(
            "Unexpected runtime archive name", field="file_name", value=file_name
        )
    return normalize_version(file_name[len(RUNTIME_NAME_PREFIX) : end])


def is_plain_file_name(name: str) -> bool:
    """True when `name` is a bare file name with no separators or dot segments."""
    return (
        bool(name)
        and name not in (".", "..")
        and "/" not in name
        and "\\" not in name
        and Path(name).name == name
    )


class VersionRegistry:
    """In-memory VersionKey -> RuntimeRecord mapping rooted at one output directory."""

    def __init__(
        self,
        output_dir: Pathish,
        seed_runtimes: Optional[Mapping[VersionKey, Tuple[str, str]]] = None,
    ):
        self.output_dir = Path(output_dir).absolute()
        self.seed_runtimes = dict(
            SEED_RUNTIMES if seed_runtimes is None else seed_runtimes
        )
        self._records: Dict[VersionKey, RuntimeRecord] = {}

    def seed(self) -> "VersionRegistry":
        for version, (file_name, checksum) in self.seed_runtimes.items():
            self._records[version] = RuntimeRecord(
                self.output_dir / file_name, checksum or None
            )
        return self

    def merge(self, discovered_names: Iterable[str]) -> List[VersionKey]:
        """
        Add records for discovered archive names that are not already known.

        Names matching a known record's file are ignored. Each remaining name gets a
        record without a checksum, keyed by the version parsed from the name. Names
        that fail to parse or that are not plain file names (a listing entry such as
        `openJdk9_/../../x` would otherwise resolve outside the output directory)
        are logged and skipped, as are names whose version is already registered
        under a different file.

        Returns:
            List[VersionKey]: The versions that were added.
        """
        known_names = {record.file_name for record in self._records.values()}
        added: List[VersionKey] = []
        for name in sorted(set(discovered_names)):
            if name in known_names:
                continue
            if not is_plain_file_name(name):
                logger.error(f"Unable to parse/download {name}: not a plain file name")
                continue
            try:
                version = parse_version_from_name(name)
            except VersionError as e:
                logger.error(f"Unable to parse/download {name}: {e}")
                continue
            if version in self._records:
                logger.debug(
                    f"Ignoring {name}; version {version} already maps to "
                    f"{self._records[version].file_name}"
                )
                continue
            self._records[version] = RuntimeRecord(self.output_dir / name, None)
            known_names.add(name)
            added.append(version)
            logger.debug(f"Registered runtime {name} for version {version}")
        return added

    def get(self, version: VersionKey) -> Optional[RuntimeRecord]:
        return self._records.get(version)

    def records(self) -> List[RuntimeRecord]:
        return list(self._records.values())

    def versions(self) -> List[VersionKey]:
        return sorted(self._records)

    def __contains__(self, version: object) -> bool:
        return version in self._records

    def __iter__(self) -> Iterator[VersionKey]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)
