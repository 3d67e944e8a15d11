"""
Configuration loading for crossjdk.

Settings live in a YAML file (`crossjdk.yaml`) with upper-case keys. The file
is looked up at an explicit path, then in the build directory, then in the
platformdirs user config directory; whatever is found is merged over
DEFAULT_CONFIG and a few environment overrides are applied last.

Build descriptions (the compile tasks the orchestrator evaluates) are also
YAML and are loaded here with load_build_file().
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs
import yaml

from crossjdk.constants import (
    APP_NAME,
    BASE_URL_ENV_VAR,
    CONFIG_FILE_NAME,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_BASE_URL,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    LOG_FILE_NAME,
    OFFLINE_ENV_VAR,
    OUTPUT_DIR_NAME,
)
from crossjdk.exceptions import (
    ConfigFileError,
    ConfigValidationError,
    VersionError,
)
from crossjdk.log_utils import logger
from crossjdk.runtime.interfaces import BuildContext, CompilerFamily, TaskDescriptor
from crossjdk.runtime.version import normalize_version

DEFAULT_CONFIG: Dict[str, Any] = {
    "BASE_URL": DEFAULT_BASE_URL,
    "OUTPUT_DIR_NAME": OUTPUT_DIR_NAME,
    "OFFLINE": False,
    "REQUEST_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
    "CONNECT_RETRIES": DEFAULT_CONNECT_RETRIES,
    "BACKOFF_FACTOR": DEFAULT_BACKOFF_FACTOR,
    "LOG_LEVEL": None,
    "LOG_DIR": None,
    "LOG_FILE_NAME": LOG_FILE_NAME,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def get_config_dir() -> Path:
    return Path(platformdirs.user_config_dir(APP_NAME))


def parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigValidationError(
        f"Invalid boolean value for {key}", details=f"got {value!r}"
    )


def find_config_file(
    config_path: Optional[Path] = None, build_dir: Optional[Path] = None
) -> Optional[Path]:
    """
    Locate the configuration file.

    An explicit `config_path` must exist. Otherwise the build directory is checked
    first and the user config directory second.

    Raises:
        ConfigFileError: If an explicit path was given and does not exist.
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigFileError("Configuration file not found", details=str(path))
        return path

    candidates = []
    if build_dir is not None:
        candidates.append(Path(build_dir) / CONFIG_FILE_NAME)
    candidates.append(get_config_dir() / CONFIG_FILE_NAME)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _read_yaml_mapping(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Unable to read {path}", details=str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Unable to read {path}", details="top level must be a mapping"
        )
    return data


def _number(
    config: Dict[str, Any], key: str, kind: type, minimum: float, strict: bool = False
) -> Any:
    value = config.get(key)
    if isinstance(value, bool):
        raise ConfigValidationError(
            f"{key} must be a number", details=f"got {value!r}"
        )
    try:
        number = kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(
            f"{key} must be a number", details=f"got {value!r}"
        ) from e
    if number < minimum or (strict and number == minimum):
        raise ConfigValidationError(
            f"{key} is out of range", details=f"got {value!r}"
        )
    return number


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize and validate a merged configuration in place.

    Raises:
        ConfigValidationError: If any value has the wrong type or range.
    """
    base_url = config.get("BASE_URL")
    if not isinstance(base_url, str) or not base_url.startswith(
        ("http://", "https://")
    ):
        raise ConfigValidationError(
            "BASE_URL must be an http(s) URL", details=f"got {base_url!r}"
        )
    config["BASE_URL"] = base_url.rstrip("/")

    output_dir_name = config.get("OUTPUT_DIR_NAME")
    if not isinstance(output_dir_name, str) or not output_dir_name.strip():
        raise ConfigValidationError("OUTPUT_DIR_NAME must be a non-empty string")

    config["OFFLINE"] = parse_bool(config.get("OFFLINE"), "OFFLINE")

    config["REQUEST_TIMEOUT"] = _number(
        config, "REQUEST_TIMEOUT", float, minimum=0.0, strict=True
    )
    config["CONNECT_RETRIES"] = _number(config, "CONNECT_RETRIES", int, minimum=0)
    config["BACKOFF_FACTOR"] = _number(config, "BACKOFF_FACTOR", float, minimum=0.0)

    log_file_name = config.get("LOG_FILE_NAME")
    if (
        not isinstance(log_file_name, str)
        or not log_file_name.strip()
        or Path(log_file_name).name != log_file_name
    ):
        raise ConfigValidationError(
            "LOG_FILE_NAME must be a plain file name", details=f"got {log_file_name!r}"
        )

    return config


def load_config(
    config_path: Optional[Path] = None, build_dir: Optional[Path] = None
) -> Dict[str, Any]:
    """
    Load, merge and validate the crossjdk configuration.

    Returns DEFAULT_CONFIG (plus environment overrides) when no file is found.
    Unknown keys are kept but logged at debug level.

    Raises:
        ConfigFileError: If the file cannot be read or parsed.
        ConfigValidationError: If a value is invalid.
    """
    config = dict(DEFAULT_CONFIG)
    path = find_config_file(config_path, build_dir)
    if path is not None:
        loaded = _read_yaml_mapping(path)
        unknown = sorted(set(loaded) - set(DEFAULT_CONFIG))
        if unknown:
            logger.debug(f"Ignoring unknown configuration keys in {path}: {unknown}")
        config.update(loaded)
        logger.debug(f"Loaded configuration from {path}")

    env_base_url = os.environ.get(BASE_URL_ENV_VAR)
    if env_base_url:
        config["BASE_URL"] = env_base_url
    env_offline = os.environ.get(OFFLINE_ENV_VAR)
    if env_offline is not None:
        config["OFFLINE"] = parse_bool(env_offline, OFFLINE_ENV_VAR)

    return validate_config(config)


def _parse_optional_version(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return normalize_version(value)
    except VersionError as e:
        raise ConfigValidationError(f"Invalid {field}", details=str(e)) from e


def parse_tasks(entries: Any) -> List[TaskDescriptor]:
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ConfigValidationError("tasks must be a list")
    tasks: List[TaskDescriptor] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ConfigValidationError(
                f"Task entry {index} must be a mapping with a name"
            )
        tasks.append(
            TaskDescriptor(
                name=str(entry["name"]),
                family=CompilerFamily.from_name(entry.get("family")),
                target_version=_parse_optional_version(
                    entry.get("target"), f"target of task {entry['name']}"
                ),
            )
        )
    return tasks


def load_build_file(
    build_file: Path,
    current_version: int,
    build_dir: Optional[Path] = None,
    offline: bool = False,
    requested_tasks: Optional[List[str]] = None,
) -> BuildContext:
    """
    Read a YAML build description into a BuildContext.

    The file may define `target_compatibility`, `requested_tasks` and a `tasks`
    list of `{name, family, target}` entries. Explicit `requested_tasks` are
    appended to the ones in the file; `build_dir` defaults to the file's directory
    joined with `build`.

    Raises:
        ConfigFileError: If the file cannot be read.
        ConfigValidationError: If an entry is malformed.
    """
    path = Path(build_file)
    if not path.is_file():
        raise ConfigFileError("Build file not found", details=str(path))
    data = _read_yaml_mapping(path)

    requested = [str(name) for name in data.get("requested_tasks") or []]
    requested.extend(requested_tasks or [])

    return BuildContext(
        tasks=parse_tasks(data.get("tasks")),
        current_version=current_version,
        build_dir=Path(build_dir) if build_dir else path.parent / "build",
        project_target=_parse_optional_version(
            data.get("target_compatibility"), "target_compatibility"
        ),
        offline=offline,
        requested_tasks=requested,
    )
