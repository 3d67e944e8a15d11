"""
Tests for the cross-compile orchestrator.

Covers task evaluation, clean-step deferral, task configuration and the full
acquire/reconcile/configure pipeline against a mocked HTTP session.
"""

import hashlib
import io

import pytest

from crossjdk.exceptions import ManifestError, NoRuntimeArchivesError
from crossjdk.runtime import codec
from crossjdk.runtime.acquisition import AcquisitionEngine
from crossjdk.runtime.interfaces import (
    AcquisitionStatus,
    BuildContext,
    CompilerFamily,
    ReconcileReport,
    TaskDescriptor,
)
from crossjdk.runtime.manifest import ManifestResolver
from crossjdk.runtime.orchestrator import CrossCompileOrchestrator, OrchestratorState
from crossjdk.runtime.registry import VersionRegistry

BASE_URL = "https://example.com/jdkRuntimes"
SEEDED_RAW_NAMES = ("openJdk6_rt.jar", "openJdk7_rt.jar", "openJdk8_rt.jar")


def _java(name="compileJava", target=8):
    return TaskDescriptor(name, CompilerFamily.JAVA, target)


def _build(tmp_path, tasks, current_version=11, **kwargs):
    return BuildContext(
        tasks=tasks,
        current_version=current_version,
        build_dir=tmp_path / "build",
        **kwargs,
    )


def _write_raw_runtimes(tmp_path, *names):
    runtime_dir = tmp_path / "build" / "jdkRuntimes"
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for name in names:
        (runtime_dir / name).write_bytes(b"PK\x03\x04 cached runtime")
    return runtime_dir


@pytest.fixture
def packed_runtime(class_like_bytes):
    out = io.BytesIO()
    codec.pack_stream(io.BytesIO(class_like_bytes), out)
    return out.getvalue()


@pytest.fixture
def mocked_engines(mocker):
    """Orchestrator collaborators as mocks; reconcile reports no work."""
    manifest = mocker.Mock(spec=ManifestResolver)
    manifest.list_available.return_value = set()
    acquisition = mocker.Mock(spec=AcquisitionEngine)
    acquisition.ensure_all.return_value = []
    acquisition.is_valid.return_value = False
    transcoding = mocker.Mock()
    transcoding.reconcile.return_value = ReconcileReport()
    return manifest, acquisition, transcoding


@pytest.fixture
def orchestrator(mocked_engines):
    manifest, acquisition, transcoding = mocked_engines
    return CrossCompileOrchestrator(
        base_url=BASE_URL,
        manifest_resolver=manifest,
        acquisition_engine=acquisition,
        transcoding_engine=transcoding,
    )


@pytest.mark.unit
class TestEvaluation:
    def test_no_action_when_targets_match(self, tmp_path, orchestrator, mocked_engines):
        manifest, acquisition, transcoding = mocked_engines
        build = _build(tmp_path, [_java(target=11)], current_version=11)

        state = orchestrator.on_configuration_finalized(build)

        assert state is OrchestratorState.NO_ACTION_NEEDED
        manifest.list_available.assert_not_called()
        acquisition.ensure_all.assert_not_called()
        transcoding.reconcile.assert_not_called()
        assert not (tmp_path / "build").exists()

    def test_undeclared_and_non_compile_tasks_are_ignored(self, tmp_path, orchestrator):
        build = _build(
            tmp_path,
            [
                TaskDescriptor("compileJava", CompilerFamily.JAVA, None),
                TaskDescriptor("jar", CompilerFamily.OTHER, 8),
            ],
        )
        assert not orchestrator.needs_cross_compile(build)

    def test_project_target_alone_triggers_setup(self, tmp_path, orchestrator):
        build = _build(tmp_path, [], project_target=8)
        assert orchestrator.needs_cross_compile(build)

    def test_differing_task_runs_setup_immediately(
        self, tmp_path, orchestrator, mocked_engines
    ):
        _, acquisition, transcoding = mocked_engines
        build = _build(tmp_path, [_java()])

        state = orchestrator.on_configuration_finalized(build)

        assert state is OrchestratorState.DONE
        acquisition.ensure_all.assert_called_once()
        transcoding.reconcile.assert_called_once_with(
            (tmp_path / "build" / "jdkRuntimes").absolute()
        )
        assert (tmp_path / "build" / "jdkRuntimes").is_dir()

    def test_evaluation_runs_once(self, tmp_path, orchestrator, mocked_engines):
        _, acquisition, _ = mocked_engines
        build = _build(tmp_path, [_java()])

        orchestrator.on_configuration_finalized(build)
        state = orchestrator.on_configuration_finalized(build)

        assert state is OrchestratorState.DONE
        acquisition.ensure_all.assert_called_once()


@pytest.mark.unit
class TestCleanDeferral:
    def test_setup_waits_for_clean(self, tmp_path, orchestrator, mocked_engines):
        _, acquisition, _ = mocked_engines
        build = _build(tmp_path, [_java()], requested_tasks=["clean", "build"])

        state = orchestrator.on_configuration_finalized(build)

        assert state is OrchestratorState.DEFERRED
        acquisition.ensure_all.assert_not_called()
        assert build.pending_hooks() == ["clean"]

        build.fire_after("clean")

        assert orchestrator.state is OrchestratorState.DONE
        acquisition.ensure_all.assert_called_once()
        assert build.pending_hooks() == []

    def test_setup_follows_last_clean_task(self, tmp_path, orchestrator):
        build = _build(
            tmp_path,
            [_java()],
            requested_tasks=["cleanIdea", "compileJava", "cleanTest"],
        )

        orchestrator.on_configuration_finalized(build)

        assert build.pending_hooks() == ["cleanTest"]
        build.fire_after("cleanIdea")
        assert orchestrator.state is OrchestratorState.DEFERRED
        build.fire_after("cleanTest")
        assert orchestrator.state is OrchestratorState.DONE

    def test_clean_marker_is_case_insensitive(self, tmp_path, orchestrator):
        build = _build(tmp_path, [_java()], requested_tasks=["deepClean"])
        assert orchestrator.on_configuration_finalized(build) is OrchestratorState.DEFERRED


@pytest.mark.unit
class TestRegistryBuilding:
    def test_offline_skips_manifest(self, tmp_path, orchestrator, mocked_engines):
        manifest, acquisition, _ = mocked_engines
        build = _build(tmp_path, [_java()], offline=True)

        orchestrator.setup(build)

        manifest.list_available.assert_not_called()
        acquisition.ensure_all.assert_called_once_with(orchestrator.registry, offline=True)
        assert orchestrator.registry.versions() == [6, 7, 8]

    def test_manifest_failure_falls_back_to_seed(
        self, tmp_path, orchestrator, mocked_engines, mocker
    ):
        manifest, _, _ = mocked_engines
        manifest.list_available.side_effect = ManifestError(
            "Unable to fetch runtime manifest", url=BASE_URL, details="HTTP 503"
        )
        mock_logger = mocker.patch("crossjdk.runtime.orchestrator.logger")

        orchestrator.setup(_build(tmp_path, [_java()]))

        assert orchestrator.registry.versions() == [6, 7, 8]
        mock_logger.warning.assert_called_once()

    def test_manifest_names_are_merged(self, tmp_path, orchestrator, mocked_engines):
        manifest, _, _ = mocked_engines
        manifest.list_available.return_value = {
            "openJdk8_rt.jar.pack.lzma",
            "openJdk9_rt.jar.pack.lzma",
        }

        orchestrator.setup(_build(tmp_path, [_java(target=9)]))

        manifest.list_available.assert_called_once_with(BASE_URL)
        assert orchestrator.registry.versions() == [6, 7, 8, 9]
        assert orchestrator.registry.get(9).checksum is None

    def test_manifest_skipped_when_cache_covers_build(
        self, tmp_path, orchestrator, mocked_engines
    ):
        manifest, acquisition, _ = mocked_engines
        acquisition.is_valid.return_value = True
        _write_raw_runtimes(tmp_path, *SEEDED_RAW_NAMES)

        orchestrator.setup(_build(tmp_path, [_java(target=8)]))

        manifest.list_available.assert_not_called()
        assert orchestrator.registry.versions() == [6, 7, 8]

    def test_manifest_listed_when_target_not_cached(
        self, tmp_path, orchestrator, mocked_engines
    ):
        manifest, acquisition, _ = mocked_engines
        acquisition.is_valid.return_value = True
        _write_raw_runtimes(tmp_path, *SEEDED_RAW_NAMES)

        orchestrator.setup(_build(tmp_path, [_java(target=9)]))

        manifest.list_available.assert_called_once_with(BASE_URL)

    def test_manifest_listed_when_raw_counterpart_missing(
        self, tmp_path, orchestrator, mocked_engines
    ):
        manifest, acquisition, _ = mocked_engines
        acquisition.is_valid.return_value = True
        _write_raw_runtimes(tmp_path, "openJdk8_rt.jar")

        orchestrator.setup(_build(tmp_path, [_java(target=8)]))

        manifest.list_available.assert_called_once_with(BASE_URL)

    def test_manifest_listed_when_nothing_specific_is_needed(
        self, tmp_path, orchestrator, mocked_engines
    ):
        manifest, acquisition, _ = mocked_engines
        acquisition.is_valid.return_value = True
        _write_raw_runtimes(tmp_path, *SEEDED_RAW_NAMES)

        orchestrator.setup(_build(tmp_path, []))

        manifest.list_available.assert_called_once_with(BASE_URL)

    def test_cached_packed_archives_are_registered_offline(
        self, tmp_path, orchestrator
    ):
        runtime_dir = tmp_path / "build" / "jdkRuntimes"
        runtime_dir.mkdir(parents=True)
        (runtime_dir / "openJdk9_rt.jar.pack.lzma").write_bytes(b"packed")
        (runtime_dir / "notes.pack.lzma").write_bytes(b"ignored")
        task = _java(target=9)

        orchestrator.setup(_build(tmp_path, [task], offline=True))

        assert orchestrator.registry.versions() == [6, 7, 8, 9]
        assert orchestrator.registry.get(9).checksum is None
        assert task.bootstrap_classpath == str(runtime_dir.absolute() / "openJdk9_rt.jar")


@pytest.mark.unit
class TestConfigureTasks:
    def test_java_and_groovy_get_bootstrap_classpath(self, tmp_path, orchestrator):
        java = _java(target=8)
        groovy = TaskDescriptor("compileGroovy", CompilerFamily.GROOVY, 7)
        build = _build(tmp_path, [java, groovy])

        configured = orchestrator.setup(build)

        runtime_dir = (tmp_path / "build" / "jdkRuntimes").absolute()
        assert java.bootstrap_classpath == str(runtime_dir / "openJdk8_rt.jar")
        assert groovy.bootstrap_classpath == str(runtime_dir / "openJdk7_rt.jar")
        assert java.jdk_home is None
        assert [c.setting for c in configured] == [
            "bootstrap_classpath",
            "bootstrap_classpath",
        ]

    def test_kotlin_gets_jdk_home(self, tmp_path, orchestrator):
        kotlin = TaskDescriptor("compileKotlin", CompilerFamily.KOTLIN, 6)

        configured = orchestrator.setup(_build(tmp_path, [kotlin]))

        runtime_dir = (tmp_path / "build" / "jdkRuntimes").absolute()
        assert kotlin.jdk_home == str(runtime_dir / "openJdk6_rt.jar")
        assert kotlin.bootstrap_classpath is None
        assert configured[0].setting == "jdk_home"
        assert configured[0].target_version == 6

    def test_matching_tasks_are_untouched(self, tmp_path, orchestrator):
        same = _java("compileTestJava", target=11)
        orchestrator.setup(_build(tmp_path, [_java(), same]))
        assert same.bootstrap_classpath is None

    def test_missing_record_is_logged_not_raised(self, tmp_path, orchestrator, mocker):
        mock_logger = mocker.patch("crossjdk.runtime.orchestrator.logger")
        task = _java(target=5)

        configured = orchestrator.setup(_build(tmp_path, [task]))

        assert configured == []
        assert task.bootstrap_classpath is None
        mock_logger.error.assert_called_once_with(
            "Unable to determine bootstrap path 5 for compileJava"
        )

    def test_configure_task_with_explicit_registry(self, tmp_path, orchestrator):
        registry = VersionRegistry(tmp_path).seed()
        applied = orchestrator.configure_task(_java(target=7), registry)
        assert applied.path == str(tmp_path.absolute() / "openJdk7_rt.jar")


@pytest.mark.unit
class TestSetup:
    def test_setup_runs_once(self, tmp_path, orchestrator, mocked_engines):
        _, acquisition, transcoding = mocked_engines
        build = _build(tmp_path, [_java()])

        first = orchestrator.setup(build)
        second = orchestrator.setup(build)

        assert first == second
        acquisition.ensure_all.assert_called_once()
        transcoding.reconcile.assert_called_once()

    def test_no_archives_is_fatal(self, tmp_path, mocked_engines):
        manifest, acquisition, _ = mocked_engines
        orchestrator = CrossCompileOrchestrator(
            base_url=BASE_URL,
            manifest_resolver=manifest,
            acquisition_engine=acquisition,
        )

        with pytest.raises(NoRuntimeArchivesError):
            orchestrator.setup(_build(tmp_path, [_java()], offline=True))

    def test_custom_output_dir_name(self, tmp_path, mocked_engines):
        manifest, acquisition, transcoding = mocked_engines
        orchestrator = CrossCompileOrchestrator(
            base_url=BASE_URL,
            output_dir_name="runtimes",
            manifest_resolver=manifest,
            acquisition_engine=acquisition,
            transcoding_engine=transcoding,
        )
        build = _build(tmp_path, [_java()])

        orchestrator.setup(build)

        assert orchestrator.output_dir(build) == (tmp_path / "build" / "runtimes").absolute()
        assert orchestrator.registry.get(8).local_path.parent.name == "runtimes"


@pytest.mark.integration
class TestPipeline:
    def test_jdk8_download_scenario(
        self,
        tmp_path,
        monkeypatch,
        mock_session,
        mock_response,
        packed_runtime,
        class_like_bytes,
    ):
        checksum = hashlib.sha1(packed_runtime).hexdigest()
        monkeypatch.setattr(
            "crossjdk.runtime.registry.SEED_RUNTIMES",
            {8: ("openJdk8_rt.jar.pack.lzma", checksum)},
        )

        def fake_get(url, **_kwargs):
            if url == BASE_URL:
                return mock_response(
                    lines=['<a href="/x/jdkRuntimes/openJdk8_rt.jar.pack.lzma">']
                )
            if url == f"{BASE_URL}/openJdk8_rt.jar.pack.lzma":
                return mock_response(chunks=[packed_runtime])
            raise AssertionError(f"unexpected URL {url}")

        mock_session.get.side_effect = fake_get
        orchestrator = CrossCompileOrchestrator(
            base_url=BASE_URL,
            manifest_resolver=ManifestResolver(session=mock_session),
            acquisition_engine=AcquisitionEngine(BASE_URL, session=mock_session),
        )
        task = _java(target=8)
        build = _build(tmp_path, [task], current_version=11)

        state = orchestrator.on_configuration_finalized(build)

        runtime_dir = (tmp_path / "build" / "jdkRuntimes").absolute()
        raw = runtime_dir / "openJdk8_rt.jar"
        assert state is OrchestratorState.DONE
        assert [r.status for r in orchestrator.acquisition_results] == [
            AcquisitionStatus.DOWNLOADED
        ]
        assert raw.read_bytes() == class_like_bytes
        assert task.bootstrap_classpath == str(raw)

        # A second online build over the same directory needs no network and no transcoding
        mock_session.get.reset_mock()
        mock_session.get.side_effect = fake_get
        second = CrossCompileOrchestrator(
            base_url=BASE_URL,
            manifest_resolver=ManifestResolver(session=mock_session),
            acquisition_engine=AcquisitionEngine(BASE_URL, session=mock_session),
        )
        second.setup(_build(tmp_path, [_java(target=8)], current_version=11))

        mock_session.get.assert_not_called()
        assert [r.status for r in second.acquisition_results] == [
            AcquisitionStatus.VERIFIED
        ]
        assert second.reconcile_report.operations == 0

    def test_offline_with_cached_raw_archive(self, tmp_path, mock_session):
        runtime_dir = tmp_path / "build" / "jdkRuntimes"
        runtime_dir.mkdir(parents=True)
        (runtime_dir / "openJdk8_rt.jar").write_bytes(b"PK\x03\x04 cached runtime")
        orchestrator = CrossCompileOrchestrator(
            base_url=BASE_URL,
            manifest_resolver=ManifestResolver(session=mock_session),
            acquisition_engine=AcquisitionEngine(BASE_URL, session=mock_session),
        )
        task = _java(target=8)

        orchestrator.setup(_build(tmp_path, [task], offline=True))

        mock_session.get.assert_not_called()
        assert (runtime_dir / "openJdk8_rt.jar.pack.lzma").stat().st_size > 0
        assert task.bootstrap_classpath == str(
            runtime_dir.absolute() / "openJdk8_rt.jar"
        )
