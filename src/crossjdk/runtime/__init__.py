"""
crossjdk Runtime Pipeline

Acquires JDK runtime archives and keeps them transcoded so compile tasks that
target an older bytecode version can be given a matching bootstrap classpath.

Core Components:
- interfaces: Shared data structures
- naming: Raw/packed archive name mapping
- manifest: Remote archive listing
- registry: Version to archive mapping
- acquisition: Verification and download of packed archives
- codec: Two-stage pack/unpack streams
- transcoding: Directory reconciliation between raw and packed forms
- orchestrator: Build integration and task configuration
"""

from .acquisition import AcquisitionEngine
from .interfaces import (
    AcquisitionResult,
    AcquisitionStatus,
    BuildContext,
    CompilerFamily,
    ConfiguredTask,
    ReconcileReport,
    RuntimeRecord,
    TaskDescriptor,
    VersionKey,
)
from .manifest import ManifestResolver
from .orchestrator import CrossCompileOrchestrator, OrchestratorState
from .registry import VersionRegistry
from .transcoding import TranscodingEngine
from .version import detect_toolchain_version, normalize_version

__all__ = [
    # Interfaces
    "AcquisitionResult",
    "AcquisitionStatus",
    "BuildContext",
    "CompilerFamily",
    "ConfiguredTask",
    "ReconcileReport",
    "RuntimeRecord",
    "TaskDescriptor",
    "VersionKey",
    # Pipeline
    "AcquisitionEngine",
    "CrossCompileOrchestrator",
    "ManifestResolver",
    "OrchestratorState",
    "TranscodingEngine",
    "VersionRegistry",
    # Versions
    "detect_toolchain_version",
    "normalize_version",
]
