"""
Archive naming helpers.

A packed archive is always its raw sibling's name plus COMPRESS_SUFFIX, so
either side of a pair can be derived without a lookup table.
"""

from pathlib import Path
from typing import List

from crossjdk.constants import COMPRESS_SUFFIX
from crossjdk.runtime.interfaces import Pathish


def packed_name_of(raw_name: str) -> str:
    return raw_name + COMPRESS_SUFFIX


def raw_name_of(packed_name: str) -> str:
    # Only valid for names that carry COMPRESS_SUFFIX
    return packed_name[: len(packed_name) - len(COMPRESS_SUFFIX)]


def packed_path_of(raw_path: Pathish) -> Path:
    raw = Path(raw_path)
    return raw.with_name(packed_name_of(raw.name))


def raw_path_of(packed_path: Pathish) -> Path:
    packed = Path(packed_path)
    return packed.with_name(raw_name_of(packed.name))


def list_archives(directory: Pathish, suffix: str) -> List[Path]:
    """
    List regular files directly inside `directory` whose name ends in `suffix`.

    Returns an empty list when the directory does not exist. Results are sorted
    by name so passes over the directory are deterministic.
    """
    root = Path(directory)
    if not root.is_dir():
        return []
    return sorted(
        entry for entry in root.iterdir() if entry.is_file() and entry.name.endswith(suffix)
    )
