"""
Transcoding between raw and packed runtime archives.

Whichever representation of an archive is present in the runtime directory,
a reconcile pass produces the missing one, so a cache only ever needs one
form to be distributed.
"""

import lzma
import os
from pathlib import Path
from typing import Callable, List

from crossjdk.constants import COMPRESS_SUFFIX, RAW_SUFFIX
from crossjdk.exceptions import ArchiveError, NoRuntimeArchivesError
from crossjdk.log_utils import logger
from crossjdk.runtime import codec
from crossjdk.runtime.interfaces import Pathish, ReconcileReport
from crossjdk.runtime.naming import list_archives, packed_path_of, raw_path_of
from crossjdk.utils import is_non_empty_file, temp_path_for

Transcoder = Callable[[Pathish, Pathish], None]


class TranscodingEngine:
    """Reconciles a runtime directory so every archive exists in both forms."""

    def __init__(
        self,
        packer: Transcoder = codec.pack_file,
        unpacker: Transcoder = codec.unpack_file,
    ):
        self.packer = packer
        self.unpacker = unpacker

    def reconcile(self, directory: Pathish) -> ReconcileReport:
        """
        Produce the missing counterpart of every archive in `directory`.

        A counterpart that already exists and is non-empty is left alone. Failures
        are logged per file and collected in the report.

        Raises:
            NoRuntimeArchivesError: If the directory holds no raw and no packed archives.
        """
        root = Path(directory)
        raw_files = list_archives(root, RAW_SUFFIX)
        packed_files = list_archives(root, COMPRESS_SUFFIX)

        if not raw_files and not packed_files:
            raise NoRuntimeArchivesError(
                f"Unable to find or extract jar files, none were found in {root}",
                archive_path=str(root),
            )

        needs_packing: List[Path] = []
        for raw_file in raw_files:
            logger.debug(f"JarFile {raw_file}")
            if not is_non_empty_file(packed_path_of(raw_file)):
                needs_packing.append(raw_file)

        needs_unpacking: List[Path] = []
        for packed_file in packed_files:
            logger.debug(f"CompressedFile {packed_file}")
            if not is_non_empty_file(raw_path_of(packed_file)):
                needs_unpacking.append(packed_file)

        report = ReconcileReport()
        if not needs_packing and not needs_unpacking:
            return report

        logger.info("Preparing cross-compile environment")

        for raw_file in needs_packing:
            logger.debug(f"Compressing {raw_file}")
            target = packed_path_of(raw_file)
            if self._transcode(self.packer, raw_file, target, "compressing"):
                report.packed.append(target)
            else:
                report.failed.append(raw_file)

        for packed_file in needs_unpacking:
            logger.debug(f"Extracting {packed_file}")
            target = raw_path_of(packed_file)
            if self._transcode(self.unpacker, packed_file, target, "extracting"):
                report.unpacked.append(target)
            else:
                report.failed.append(packed_file)

        logger.info("Done preparing cross-compile environment")
        return report

    def _transcode(
        self, transcoder: Transcoder, source: Path, target: Path, action: str
    ) -> bool:
        """
        Run one transcode into a temporary sibling and move it into place.

        A failed transcode leaves no file at `target`, so the next pass retries it.
        """
        temp_path = temp_path_for(target)
        try:
            transcoder(source, temp_path)
            os.replace(temp_path, target)
            return True
        except (OSError, EOFError, lzma.LZMAError, ArchiveError) as e:
            logger.error(f"Error {action} {source.name}: {e}")
            return False
        finally:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError as e_rm:
                    logger.warning(f"Error removing temporary file {temp_path}: {e_rm}")
