"""
Cross-compile Orchestrator

Decides, once the host build's configuration is final, whether any compile
task targets a bytecode version other than the running toolchain, and if so
runs the acquire/reconcile pipeline once and points each such task at the
matching raw runtime archive.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Set

from crossjdk.constants import (
    CLEAN_TASK_MARKER,
    COMPRESS_SUFFIX,
    DEFAULT_BASE_URL,
    OUTPUT_DIR_NAME,
    RUNTIME_NAME_PREFIX,
)
from crossjdk.exceptions import FileSystemError, ManifestError
from crossjdk.log_utils import logger
from crossjdk.runtime.acquisition import AcquisitionEngine
from crossjdk.runtime.interfaces import (
    AcquisitionResult,
    BuildContext,
    ConfiguredTask,
    ReconcileReport,
    TaskDescriptor,
)
from crossjdk.runtime.manifest import ManifestResolver
from crossjdk.runtime.naming import list_archives, raw_path_of
from crossjdk.runtime.registry import VersionRegistry
from crossjdk.runtime.transcoding import TranscodingEngine
from crossjdk.utils import is_non_empty_file


class OrchestratorState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    NO_ACTION_NEEDED = "no_action_needed"
    NEEDS_SETUP = "needs_setup"
    DEFERRED = "deferred"
    ACQUIRING = "acquiring"
    RECONCILING = "reconciling"
    CONFIGURING = "configuring"
    DONE = "done"


def _differs(task: TaskDescriptor, current_version: int) -> bool:
    return (
        task.family.is_compiler
        and task.target_version is not None
        and task.target_version != current_version
    )


class CrossCompileOrchestrator:
    """
    Coordinates cross-compile support for one build invocation.

    This class coordinates:
    - Evaluating whether any compile task needs a foreign runtime
    - Deferring setup behind a requested clean step
    - Building the version registry (seed, cached archives, manifest)
    - Acquisition and transcoding of runtime archives
    - Applying bootstrap settings to compile tasks
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        output_dir_name: str = OUTPUT_DIR_NAME,
        manifest_resolver: Optional[ManifestResolver] = None,
        acquisition_engine: Optional[AcquisitionEngine] = None,
        transcoding_engine: Optional[TranscodingEngine] = None,
    ):
        self.base_url = base_url
        self.output_dir_name = output_dir_name
        self.manifest_resolver = manifest_resolver or ManifestResolver()
        self.acquisition_engine = acquisition_engine or AcquisitionEngine(base_url)
        self.transcoding_engine = transcoding_engine or TranscodingEngine()

        self.state = OrchestratorState.IDLE
        self.registry: Optional[VersionRegistry] = None
        self.acquisition_results: List[AcquisitionResult] = []
        self.reconcile_report: Optional[ReconcileReport] = None
        self.configured_tasks: List[ConfiguredTask] = []

    def output_dir(self, build: BuildContext) -> Path:
        return Path(build.build_dir).absolute() / self.output_dir_name

    def needs_cross_compile(self, build: BuildContext) -> bool:
        """True when the blanket project target or any compile task differs from the running version."""
        if (
            build.project_target is not None
            and build.project_target != build.current_version
        ):
            return True
        return any(_differs(task, build.current_version) for task in build.tasks)

    def on_configuration_finalized(self, build: BuildContext) -> OrchestratorState:
        """
        Host hook: evaluate the finished build description.

        Runs setup immediately, defers it until after the last requested clean
        task, or does nothing when every task already targets the running version.

        Returns:
            OrchestratorState: The state after evaluation.
        """
        if self.state is not OrchestratorState.IDLE:
            logger.debug(f"Cross-compile evaluation already ran ({self.state.value})")
            return self.state

        self.state = OrchestratorState.EVALUATING
        if not self.needs_cross_compile(build):
            logger.debug("All compile tasks target the running Java version")
            self.state = OrchestratorState.NO_ACTION_NEEDED
            return self.state

        self.state = OrchestratorState.NEEDS_SETUP
        clean_tasks = [
            name for name in build.requested_tasks if CLEAN_TASK_MARKER in name.lower()
        ]
        if clean_tasks:
            # Setup runs after the clean step so its output is not wiped
            logger.debug(f"Deferring cross-compile setup until after {clean_tasks[-1]}")
            build.run_after(clean_tasks[-1], lambda: self.setup(build))
            self.state = OrchestratorState.DEFERRED
            return self.state

        self.setup(build)
        return self.state

    def needed_versions(self, build: BuildContext) -> Set[int]:
        """Target versions the build will look up in the registry."""
        needed = {
            task.target_version
            for task in build.tasks
            if _differs(task, build.current_version)
        }
        if (
            build.project_target is not None
            and build.project_target != build.current_version
        ):
            needed.add(build.project_target)
        return needed

    def is_cache_complete(
        self, build: BuildContext, registry: VersionRegistry
    ) -> bool:
        """
        True when the runtime directory already satisfies the build.

        Every record must verify and have its raw counterpart on disk, and every
        needed target version must be registered. A build that needs no specific
        version (a plain fetch) is never considered complete, so it always lists.
        """
        needed = self.needed_versions(build)
        if not needed or not needed.issubset(registry):
            return False
        for record in registry.records():
            if not is_non_empty_file(raw_path_of(record.local_path)):
                return False
            if not self.acquisition_engine.is_valid(record):
                return False
        return True

    def build_registry(self, build: BuildContext) -> VersionRegistry:
        """
        Seed the registry, add cached packed archives, and consult the manifest.

        The manifest is skipped offline and when the cached archives already
        cover the build, so a repeated setup over a reconciled directory issues
        no request at all.
        """
        output_dir = self.output_dir(build)
        registry = VersionRegistry(output_dir).seed()
        registry.merge(
            path.name
            for path in list_archives(output_dir, COMPRESS_SUFFIX)
            if path.name.startswith(RUNTIME_NAME_PREFIX)
        )
        if build.offline:
            return registry
        if self.is_cache_complete(build, registry):
            logger.debug(
                f"Runtime archives in {output_dir} cover the build; skipping manifest"
            )
            return registry
        try:
            registry.merge(self.manifest_resolver.list_available(self.base_url))
        except ManifestError as e:
            logger.warning(f"{e}; using known runtimes only")
        return registry

    def setup(self, build: BuildContext) -> List[ConfiguredTask]:
        """
        Acquire, reconcile and configure; runs at most once per orchestrator.

        Raises:
            NoRuntimeArchivesError: If no runtime archive is available afterwards.
            FileSystemError: If the output directory cannot be created.
        """
        if self.state in (
            OrchestratorState.ACQUIRING,
            OrchestratorState.RECONCILING,
            OrchestratorState.CONFIGURING,
            OrchestratorState.DONE,
        ):
            return self.configured_tasks

        output_dir = self.output_dir(build)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(
                "Unable to create runtime directory", path=str(output_dir), details=str(e)
            ) from e

        logger.debug(f"Starting cross-compile setup in {output_dir}")
        self.state = OrchestratorState.ACQUIRING
        self.registry = self.build_registry(build)
        self.acquisition_results = self.acquisition_engine.ensure_all(
            self.registry, offline=build.offline
        )

        self.state = OrchestratorState.RECONCILING
        self.reconcile_report = self.transcoding_engine.reconcile(output_dir)

        self.state = OrchestratorState.CONFIGURING
        self.configured_tasks = self.configure(build, self.registry)
        self.state = OrchestratorState.DONE
        return self.configured_tasks

    def configure(
        self, build: BuildContext, registry: VersionRegistry
    ) -> List[ConfiguredTask]:
        configured: List[ConfiguredTask] = []
        for task in build.tasks:
            if not _differs(task, build.current_version):
                continue
            applied = self.configure_task(task, registry)
            if applied is not None:
                configured.append(applied)
        return configured

    def configure_task(
        self, task: TaskDescriptor, registry: VersionRegistry
    ) -> Optional[ConfiguredTask]:
        """
        Point one compile task at the raw runtime for its target version.

        Java and Groovy tasks get a bootstrap classpath, Kotlin tasks a JDK home.
        A version without a registry record is logged and the task is left as is.
        """
        version = task.target_version
        record = registry.get(version) if version is not None else None
        if record is None:
            logger.error(
                f"Unable to determine bootstrap path {version} for {task.name}"
            )
            return None

        location = str(raw_path_of(record.local_path))
        if task.family.uses_jdk_home:
            logger.debug(f"Configuring task {task.name} with {location}")
            task.jdk_home = location
            return ConfiguredTask(task.name, version, "jdk_home", location)
        if task.family.uses_bootstrap_classpath:
            logger.debug(f"Configuring task {task.name} with {location}")
            task.bootstrap_classpath = location
            return ConfiguredTask(task.name, version, "bootstrap_classpath", location)
        return None
