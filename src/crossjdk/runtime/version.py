"""
Bytecode version handling for the crossjdk runtime pipeline.

Versions reach the pipeline in many spellings ("1.8", "8", "VERSION_1_8",
"1.8.0_292", "17.0.2", 11). They are all reduced to a VersionKey, the
integer major version, before being compared or used as registry keys.
"""

import os
import re
import shutil
import subprocess
from typing import Optional, Union

from packaging.version import InvalidVersion, Version

from crossjdk.exceptions import VersionError
from crossjdk.log_utils import logger
from crossjdk.runtime.interfaces import VersionKey

_ENUM_STYLE_RX = re.compile(r"^VERSION_(\d+(?:_\d+)*)$", re.IGNORECASE)
_JAVA_VERSION_OUTPUT_RX = re.compile(r'version "([^"]+)"')
# Update/build suffixes such as "_292", "+7" or "-ea" are not part of the release
_RELEASE_PREFIX_RX = re.compile(r"^(\d+(?:\.\d+)*)")


def normalize_version(value: Union[str, int, None]) -> VersionKey:
    """
    Reduce a Java version spelling to its major bytecode version.

    The legacy "1.x" scheme maps to x, so "1.6", "1.8.0_292" and "VERSION_1_8"
    become 6 and 8, while "9", "11.0.2" and "VERSION_17" keep their first
    component.

    Raises:
        VersionError: If the value is empty or cannot be parsed.
    """
    if isinstance(value, bool):
        raise VersionError("Invalid Java version", field="version", value=str(value))
    if isinstance(value, int):
        if value <= 0:
            raise VersionError(
                "Invalid Java version", field="version", value=str(value)
            )
        return value
    if value is None or not str(value).strip():
        raise VersionError("Missing Java version", field="version", value=None)

    text = str(value).strip()
    enum_match = _ENUM_STYLE_RX.match(text)
    if enum_match:
        text = enum_match.group(1).replace("_", ".")

    prefix = _RELEASE_PREFIX_RX.match(text)
    if not prefix:
        raise VersionError("Invalid Java version", field="version", value=text)

    try:
        release = Version(prefix.group(1)).release
    except InvalidVersion as e:
        raise VersionError(
            "Invalid Java version", field="version", value=text, details=str(e)
        ) from e

    if release[0] == 1 and len(release) > 1:
        major = release[1]
    else:
        major = release[0]
    if major <= 0:
        raise VersionError("Invalid Java version", field="version", value=text)
    return major


def parse_java_version_output(text: str) -> Optional[VersionKey]:
    """Extract the major version from `java -version` output, or None."""
    match = _JAVA_VERSION_OUTPUT_RX.search(text or "")
    if not match:
        return None
    try:
        return normalize_version(match.group(1))
    except VersionError:
        return None


def _find_java_binary() -> Optional[str]:
    java_home = os.environ.get("JAVA_HOME")
    if java_home:
        candidate = os.path.join(java_home, "bin", "java")
        if os.path.isfile(candidate):
            return candidate
    return shutil.which("java")


def detect_toolchain_version() -> VersionKey:
    """
    Detect the running Java toolchain's major version.

    Uses `$JAVA_HOME/bin/java` when present, otherwise `java` on PATH.

    Raises:
        VersionError: If no java binary is found or its version cannot be parsed.
    """
    java_bin = _find_java_binary()
    if not java_bin:
        raise VersionError(
            "Unable to locate a java executable",
            details="Set JAVA_HOME or pass the current version explicitly",
        )

    try:
        result = subprocess.run(
            [java_bin, "-version"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise VersionError(
            f"Unable to run {java_bin} -version", details=str(e)
        ) from e

    text = result.stderr or result.stdout
    version = parse_java_version_output(text)
    if version is None:
        raise VersionError(
            "Unable to determine the running Java version",
            field="java -version",
            value=(text or "").strip()[:200],
        )
    logger.debug(f"Detected Java toolchain version {version} from {java_bin}")
    return version
