import argparse
import asyncio
import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import yaml

from autocdn.core.commands import RunMode
from autocdn.core.config_models import ConfigurationRecord, normalize_config_name
from autocdn.core.config_repository import YamlConfigRepository
from autocdn.core.config_store import ConfigCatalog, ConfigEditor, ConfigStore
from autocdn.core.errors import ControlError
from autocdn.core.event_multiplexer import EventStreamMultiplexer
from autocdn.core.labels import Labels, available_locales, get_labels
from autocdn.core.logging_config import configure_logging
from autocdn.core.logging_utils import get_module_logger
from autocdn.core.paths import CONTROL_LOG_FILE, SETTINGS_PATH
from autocdn.core.probe_backend import ProbeBackend
from autocdn.core.settings import AppSettings, get_settings_manager
from autocdn.core.task_controller import TaskController
from autocdn.core.task_state import TaskRun


logger = get_module_logger(__name__)

LIST_FIELDS = {"domains", "domainipv6s", "domain_ipv6s"}


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments; unset options fall back to the settings file."""
    parser = argparse.ArgumentParser(
        prog="autocdn",
        description="AutoCDN - control plane for the CDN speed-test engine",
    )

    parser.add_argument(
        "--settings",
        type=Path,
        default=SETTINGS_PATH,
        help=f"Settings file (default: {SETTINGS_PATH})",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding the named YAML configurations",
    )
    parser.add_argument(
        "--engine",
        type=str,
        default=None,
        help="Engine command line (default: engine_command from settings)",
    )
    parser.add_argument(
        "--log-level",
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        default=None,
        help="Logging level (default: info)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        nargs="?",
        const=CONTROL_LOG_FILE,
        default=None,
        help=f"Write a rotating log file (default path when given without a value: {CONTROL_LOG_FILE})",
    )
    parser.add_argument(
        "--locale",
        choices=available_locales(),
        default=None,
        help="Language of tags and status strings",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List configurations")

    show = subparsers.add_parser("show", help="Print a configuration with load defaults applied")
    show.add_argument("name")

    create = subparsers.add_parser("create", help="Create a configuration with default values")
    create.add_argument("name", help="Name; .yaml is appended when no extension is given")

    delete = subparsers.add_parser("delete", help="Delete a configuration")
    delete.add_argument("name")

    set_cmd = subparsers.add_parser("set", help="Change one field of a configuration")
    set_cmd.add_argument("name")
    set_cmd.add_argument("field", help="section.field, e.g. speed_test.routines or cloudflare.domains")
    set_cmd.add_argument("values", nargs="+", help="New value (several values for list fields)")

    run = subparsers.add_parser("run", help="Run the speed test")
    run.add_argument("name")
    run.add_argument(
        "--mode",
        choices=[mode.value for mode in RunMode],
        default=RunMode.MANUAL.value,
        help="auto updates DNS records after the test, manual only measures (default: manual)",
    )

    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    settings = get_settings_manager().load(args.settings)
    overrides = {}
    if args.config_dir is not None:
        overrides["config_dir"] = args.config_dir
    if args.engine:
        overrides["engine_command"] = tuple(args.engine.split())
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.locale:
        overrides["locale"] = args.locale
    if not overrides:
        return settings
    return replace(settings, **overrides)


def build_backend(settings: AppSettings) -> ProbeBackend:
    repository = YamlConfigRepository(settings.config_dir)
    return ProbeBackend(
        repository,
        settings.engine_command,
        stop_grace_seconds=settings.stop_grace_seconds,
    )


def _print_record(name: str, record: ConfigurationRecord) -> None:
    print(f"# {name}")
    print(yaml.safe_dump(record.to_dict(), sort_keys=False, allow_unicode=True), end="")


async def _run_probe(backend: ProbeBackend, name: str, mode: str, labels: Labels) -> int:
    multiplexer = EventStreamMultiplexer(backend.events, labels=labels)
    printed = {"sequence": 0, "percent": -1}

    def on_change(run: TaskRun) -> None:
        for line in run.new_lines_since(printed["sequence"]):
            print(line, flush=True)
        printed["sequence"] = run.log_sequence
        percent = int(run.progress_percent)
        if run.running and percent != printed["percent"]:
            printed["percent"] = percent
            print(f"[{percent:3d}%] {run.status_text}", flush=True)

    async with TaskController(backend, multiplexer) as controller:
        controller.subscribe(on_change)

        loop = asyncio.get_running_loop()
        stop_task: Optional[asyncio.Task] = None

        def signal_handler():
            nonlocal stop_task
            if stop_task is None or stop_task.done():
                logger.info("Interrupt received, requesting stop")
                stop_task = asyncio.create_task(controller.stop())

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, signal_handler)
            except NotImplementedError:
                pass  # Windows doesn't support add_signal_handler

        try:
            if not await controller.start(name, mode):
                print("Run not started", file=sys.stderr)
                return 1
            run = await controller.wait_until_settled()
            await backend.events.flush()
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except NotImplementedError:
                    pass

        print(run.status_text)
        return 1 if run.error else 0


async def _dispatch(args: argparse.Namespace, settings: AppSettings) -> int:
    labels = get_labels(settings.locale)
    backend = build_backend(settings)
    store = ConfigStore(backend)

    try:
        if args.command == "list":
            for name in await store.list():
                print(name)
            return 0

        if args.command == "show":
            _print_record(args.name, await store.load(args.name))
            return 0

        if args.command == "create":
            catalog = ConfigCatalog(store, labels=labels)
            created = await catalog.create(args.name)
            if created is None:
                print(catalog.status_text or "Invalid name", file=sys.stderr)
                return 1
            print(created)
            return 0

        if args.command == "delete":
            catalog = ConfigCatalog(store, labels=labels)
            if not await catalog.delete(args.name):
                print(catalog.status_text, file=sys.stderr)
                return 1
            return 0

        if args.command == "set":
            editor = ConfigEditor(store, labels=labels)
            if not await editor.open(args.name):
                print(editor.status_text, file=sys.stderr)
                return 1
            section, _, field = args.field.partition(".")
            if field in LIST_FIELDS:
                editor.set_lines(section, field, "\n".join(args.values))
            else:
                editor.edit(section, field, " ".join(args.values))
            if not await editor.save():
                print(editor.status_text, file=sys.stderr)
                return 1
            _print_record(args.name, editor.record)
            return 0

        if args.command == "run":
            return await _run_probe(backend, normalize_config_name(args.name), args.mode, labels)

    except ControlError as e:
        print(f"{labels.error_prefix}: {e}", file=sys.stderr)
        return 1
    finally:
        await backend.shutdown()

    return 2


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    settings = resolve_settings(args)
    configure_logging(settings.log_level.upper(), log_file=settings.log_file)

    logger.debug("Config dir: %s, engine: %s", settings.config_dir, " ".join(settings.engine_command))
    try:
        return asyncio.run(_dispatch(args, settings))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
