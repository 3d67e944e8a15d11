"""
Core Interfaces for the crossjdk Runtime Pipeline

This module defines the data structures shared by the registry, the
acquisition and transcoding engines, and the task orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

Pathish = Union[str, Path]

VersionKey = int
"""Normalized major bytecode version (8 for "1.8", 17 for "17.0.2")."""


@dataclass(frozen=True)
class RuntimeRecord:
    """Where a packed runtime archive lives and how to verify it."""

    local_path: Path
    """Absolute path of the packed archive (present or to be downloaded)"""

    checksum: Optional[str] = None
    """Expected SHA-1 hex digest; None means verify by existence only"""

    @property
    def file_name(self) -> str:
        return self.local_path.name


class CompilerFamily(Enum):
    """Compile task families and the bootstrap capability each one exposes."""

    JAVA = "java"
    GROOVY = "groovy"
    KOTLIN = "kotlin"
    OTHER = "other"

    @property
    def is_compiler(self) -> bool:
        return self is not CompilerFamily.OTHER

    @property
    def uses_bootstrap_classpath(self) -> bool:
        return self in (CompilerFamily.JAVA, CompilerFamily.GROOVY)

    @property
    def uses_jdk_home(self) -> bool:
        return self is CompilerFamily.KOTLIN

    @classmethod
    def from_name(cls, name: Optional[str]) -> "CompilerFamily":
        """Map a free-form family name to a member; unknown names are OTHER."""
        if not name:
            return cls.OTHER
        try:
            return cls(name.strip().lower())
        except ValueError:
            return cls.OTHER


@dataclass
class TaskDescriptor:
    """A host compile task as seen by the orchestrator."""

    name: str
    """Task name as known to the host build"""

    family: CompilerFamily = CompilerFamily.OTHER
    """Which compiler family the task belongs to"""

    target_version: Optional[VersionKey] = None
    """Declared target bytecode version (None when not declared)"""

    bootstrap_classpath: Optional[str] = None
    """Set by the orchestrator for Java and Groovy tasks"""

    jdk_home: Optional[str] = None
    """Set by the orchestrator for Kotlin tasks"""


@dataclass
class BuildContext:
    """
    Host build inputs consumed by the orchestrator.

    Besides plain inputs, the context carries a small hook table so work can be
    deferred until after a named host task (usually a clean step) has run.
    """

    tasks: List[TaskDescriptor]
    current_version: VersionKey
    build_dir: Path
    project_target: Optional[VersionKey] = None
    offline: bool = False
    requested_tasks: List[str] = field(default_factory=list)
    _after_hooks: Dict[str, List[Callable[[], object]]] = field(
        default_factory=dict, repr=False
    )

    def run_after(self, task_name: str, callback: Callable[[], object]) -> None:
        """Register `callback` to run once the host task `task_name` completes."""
        self._after_hooks.setdefault(task_name, []).append(callback)

    def fire_after(self, task_name: str) -> List[object]:
        """Run and clear the callbacks registered for `task_name`, returning their results."""
        callbacks = self._after_hooks.pop(task_name, [])
        return [callback() for callback in callbacks]

    def pending_hooks(self) -> List[str]:
        return [name for name, hooks in self._after_hooks.items() if hooks]


class AcquisitionStatus(Enum):
    SKIPPED_OFFLINE = "skipped_offline"
    VERIFIED = "verified"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


@dataclass
class AcquisitionResult:
    """Outcome of ensuring one runtime archive is present locally."""

    record: RuntimeRecord
    status: AcquisitionStatus
    url: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status in (AcquisitionStatus.VERIFIED, AcquisitionStatus.DOWNLOADED)


@dataclass
class ReconcileReport:
    """What a single transcoding pass produced."""

    packed: List[Path] = field(default_factory=list)
    """Packed archives created from raw archives"""

    unpacked: List[Path] = field(default_factory=list)
    """Raw archives created from packed archives"""

    failed: List[Path] = field(default_factory=list)
    """Source archives whose transcode failed"""

    @property
    def operations(self) -> int:
        return len(self.packed) + len(self.unpacked) + len(self.failed)


@dataclass
class ConfiguredTask:
    """The bootstrap setting applied to one compile task."""

    task_name: str
    target_version: VersionKey
    setting: str
    """Either bootstrap_classpath or jdk_home"""

    path: str
