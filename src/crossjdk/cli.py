# src/crossjdk/cli.py

import argparse
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from crossjdk import log_utils
from crossjdk.config import load_build_file, load_config
from crossjdk.constants import CLEAN_TASK_MARKER
from crossjdk.exceptions import CrossJdkError
from crossjdk.runtime.acquisition import AcquisitionEngine
from crossjdk.runtime.interfaces import BuildContext
from crossjdk.runtime.manifest import ManifestResolver
from crossjdk.runtime.orchestrator import CrossCompileOrchestrator, OrchestratorState
from crossjdk.runtime.transcoding import TranscodingEngine
from crossjdk.runtime.version import detect_toolchain_version, normalize_version
from crossjdk.utils import create_session, get_app_version

logger = log_utils.logger


def create_orchestrator(config: Dict[str, Any]) -> CrossCompileOrchestrator:
    """Wire an orchestrator from a validated configuration mapping."""
    timeout = config["REQUEST_TIMEOUT"]
    session = create_session(
        retries=config["CONNECT_RETRIES"], backoff_factor=config["BACKOFF_FACTOR"]
    )
    return CrossCompileOrchestrator(
        base_url=config["BASE_URL"],
        output_dir_name=config["OUTPUT_DIR_NAME"],
        manifest_resolver=ManifestResolver(timeout=timeout),
        acquisition_engine=AcquisitionEngine(
            config["BASE_URL"], session=session, timeout=timeout
        ),
    )


def _apply_logging(
    args: argparse.Namespace, config: Dict[str, Any], build_dir: Optional[Path] = None
) -> None:
    log_utils.configure_logging(
        args.log_level or config.get("LOG_LEVEL"),
        config.get("LOG_DIR"),
        build_dir=build_dir,
        file_name=config["LOG_FILE_NAME"],
    )


def _clean_output(output_dir: Path, build_dir: Path) -> None:
    """Stand-in for the host's clean step: remove the runtime directory."""
    resolved = output_dir.resolve()
    if resolved.exists() and resolved.is_relative_to(build_dir.resolve()):
        logger.info(f"Removing {resolved}")
        shutil.rmtree(resolved)


def _log_configured(orchestrator: CrossCompileOrchestrator) -> None:
    for configured in orchestrator.configured_tasks:
        logger.info(
            f"{configured.task_name}: {configured.setting} = {configured.path}"
        )


def run_prepare(args: argparse.Namespace) -> int:
    build_file = Path(args.build)
    config = load_config(args.config, build_file.parent)
    build_dir = Path(args.build_dir) if args.build_dir else build_file.parent / "build"
    _apply_logging(args, config, build_dir)

    if args.current_version:
        current_version = normalize_version(args.current_version)
    else:
        current_version = detect_toolchain_version()

    build = load_build_file(
        build_file,
        current_version,
        build_dir=build_dir,
        offline=args.offline or config["OFFLINE"],
        requested_tasks=[CLEAN_TASK_MARKER] if args.clean else None,
    )

    orchestrator = create_orchestrator(config)
    state = orchestrator.on_configuration_finalized(build)
    if state is OrchestratorState.NO_ACTION_NEEDED:
        logger.info(f"Nothing to do; all tasks target Java {current_version}")
        return 0

    _run_requested_cleans(build, orchestrator)
    _log_configured(orchestrator)
    return 0


def _run_requested_cleans(
    build: BuildContext, orchestrator: CrossCompileOrchestrator
) -> None:
    """Run the clean step once, then release whatever waits on the clean tasks."""
    clean_tasks = [
        name for name in build.requested_tasks if CLEAN_TASK_MARKER in name.lower()
    ]
    if not clean_tasks:
        return
    _clean_output(orchestrator.output_dir(build), Path(build.build_dir))
    # The same task may be requested twice (build file plus --clean)
    for task_name in dict.fromkeys(clean_tasks):
        build.fire_after(task_name)


def run_fetch(args: argparse.Namespace) -> int:
    build_dir = Path(args.build_dir)
    config = load_config(args.config, build_dir)
    _apply_logging(args, config, build_dir)

    build = BuildContext(
        tasks=[],
        current_version=0,
        build_dir=build_dir,
        offline=args.offline or config["OFFLINE"],
    )
    orchestrator = create_orchestrator(config)
    orchestrator.setup(build)

    for result in orchestrator.acquisition_results:
        logger.info(f"{result.record.file_name}: {result.status.value}")
    return 0


def run_list(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    _apply_logging(args, config)
    base_url = args.base_url or config["BASE_URL"]
    names = ManifestResolver(timeout=config["REQUEST_TIMEOUT"]).list_available(
        base_url
    )
    if not names:
        logger.info(f"No runtime archives listed at {base_url}")
    for name in sorted(names):
        logger.info(name)
    return 0


def run_reconcile(args: argparse.Namespace) -> int:
    if args.log_level:
        log_utils.set_log_level(args.log_level)
    report = TranscodingEngine().reconcile(Path(args.directory))
    logger.info(
        f"Packed {len(report.packed)}, unpacked {len(report.unpacked)}, "
        f"failed {len(report.failed)}"
    )
    return 1 if report.failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="crossjdk - JDK runtime archives for cross-compiling builds"
    )
    parser.add_argument(
        "--log-level",
        help="Console log level (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command")

    prepare_parser = subparsers.add_parser(
        "prepare", help="Evaluate a build description and configure its compile tasks"
    )
    prepare_parser.add_argument(
        "--build", required=True, help="YAML build description file"
    )
    prepare_parser.add_argument(
        "--current-version",
        help="Running Java version (detected from JAVA_HOME or PATH when omitted)",
    )
    prepare_parser.add_argument("--build-dir", help="Build output directory")
    prepare_parser.add_argument("--config", help="Path to crossjdk.yaml")
    prepare_parser.add_argument(
        "--offline", action="store_true", help="Never access the network"
    )
    prepare_parser.add_argument(
        "--clean",
        action="store_true",
        help="Clean the runtime directory before preparing it",
    )

    fetch_parser = subparsers.add_parser(
        "fetch", help="Download and transcode all known runtime archives"
    )
    fetch_parser.add_argument("--build-dir", default="build", help="Build directory")
    fetch_parser.add_argument("--config", help="Path to crossjdk.yaml")
    fetch_parser.add_argument(
        "--offline", action="store_true", help="Never access the network"
    )

    list_parser = subparsers.add_parser(
        "list", help="List runtime archives published at the base URL"
    )
    list_parser.add_argument("--base-url", help="Override the configured base URL")
    list_parser.add_argument("--config", help="Path to crossjdk.yaml")

    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Pack or unpack archives so both forms exist"
    )
    reconcile_parser.add_argument("directory", help="Runtime archive directory")

    subparsers.add_parser("version", help="Display crossjdk version")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the crossjdk command-line interface.

    Dispatches the prepare, fetch, list, reconcile and version subcommands.
    Application errors are logged and turned into exit status 1.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    handlers = {
        "prepare": run_prepare,
        "fetch": run_fetch,
        "list": run_list,
        "reconcile": run_reconcile,
    }

    if args.command == "version":
        logger.info(f"crossjdk {get_app_version()}")
        return 0
    if args.command not in handlers:
        parser.print_help()
        return 0

    try:
        return handlers[args.command](args)
    except CrossJdkError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
