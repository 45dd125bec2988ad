"""
tezedge_stacks.cli

Command-line entrypoint (`tezedge-stacks`, `python -m tezedge_stacks`).

Responsibilities:
- Parse arguments and dispatch to `DeploymentService` / validation.
- Print human-readable (or JSON) results; map outcomes to exit codes
  (0 ok, 1 validation/command failure, 2 usage error).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict
from typing import Any, TypeVar

import httpx
import structlog

from tezedge_stacks import __version__
from tezedge_stacks.compose.loader import dump_compose, resolve_environment
from tezedge_stacks.db.init_db import init_db
from tezedge_stacks.db.session import create_engine, create_sessionmaker
from tezedge_stacks.observability.logging import configure_logging, get_logger
from tezedge_stacks.runtime.compose_cli import ComposeCommandError
from tezedge_stacks.services.deployment_service import DeploymentService, RunnerFactory
from tezedge_stacks.settings import Settings, get_settings
from tezedge_stacks.stacks.registry import UnknownStackError, get_stack, list_stacks
from tezedge_stacks.validation.report import StackValidationError, ValidationReport
from tezedge_stacks.validation.validator import validate_file

log = get_logger(__name__)

T = TypeVar("T")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _env_pair(text: str) -> tuple[str, str]:
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {text!r}")
    return key, value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tezedge-stacks",
        description="Render, validate and run the TezEdge node/debugger/monitoring/explorer stacks.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--env-file", help="dotenv file with interpolation variables (default: TZS_ENV_FILE)")
    parser.add_argument(
        "-e",
        "--env",
        dest="env",
        action="append",
        type=_env_pair,
        default=[],
        metavar="KEY=VALUE",
        help="interpolation variable override; repeatable",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="list shipped stacks")

    p = sub.add_parser("render", help="write a stack's compose file")
    p.add_argument("name")
    p.add_argument("-o", "--output-dir", help="directory to render into (default: TZS_OUTPUT_DIR)")
    p.add_argument("--stdout", action="store_true", help="print the YAML instead of writing it")

    p = sub.add_parser("validate", help="run configuration-validity checks")
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument("name", nargs="?")
    target.add_argument("-f", "--file", help="validate an arbitrary compose file")
    p.add_argument("--json", action="store_true", help="print the report as JSON")

    p = sub.add_parser("up", help="validate, start and wait for a stack")
    p.add_argument("name")
    p.add_argument("--no-wait", action="store_true", help="do not wait for endpoints")

    p = sub.add_parser("down", help="stop a stack")
    p.add_argument("name")
    p.add_argument("--volumes", action="store_true", help="also remove named volumes")

    p = sub.add_parser("status", help="container state and endpoint probes")
    p.add_argument("name")
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("events", help="deployment event log")
    p.add_argument("name")
    p.add_argument("--limit", type=int, default=20)

    sub.add_parser("serve", help="run the HTTP API")
    return parser


def _actor() -> str:
    return f"cli:{os.environ.get('USER', 'unknown')}"


def _print_report(report: ValidationReport, *, as_json: bool) -> None:
    if as_json:
        print(report.model_dump_json(indent=2))
        return
    for finding in report.findings:
        print(str(finding))
    s = report.summary()
    print(f"{s['stack']}: {'ok' if report.ok else 'FAILED'} ({s['errors']} errors, {s['warnings']} warnings)")


async def _with_service(
    settings: Settings,
    runner_factory: RunnerFactory | None,
    fn: Callable[[DeploymentService], Awaitable[T]],
) -> T:
    engine = create_engine(settings)
    try:
        await init_db(engine)
        async with create_sessionmaker(engine)() as session, httpx.AsyncClient() as http:
            svc = DeploymentService(
                session=session, settings=settings, http=http, runner_factory=runner_factory
            )
            return await fn(svc)
    finally:
        await engine.dispose()


async def _run(args: argparse.Namespace, settings: Settings, runner_factory: RunnerFactory | None) -> int:
    overrides = dict(args.env)
    actor = _actor()

    if args.command == "list":
        for s in list_stacks():
            print(f"{s.name:<10} {s.compose_file:<36} {s.description}")
        return EXIT_OK

    if args.command == "render" and args.stdout:
        sys.stdout.write(dump_compose(get_stack(args.name).build()))
        return EXIT_OK

    if args.command == "validate" and args.file:
        env = resolve_environment(env_file=settings.env_file, overrides=overrides)
        report = validate_file(args.file, env)
        _print_report(report, as_json=args.json)
        return EXIT_OK if report.ok else EXIT_FAILED

    if args.command == "render":
        path = await _with_service(
            settings, runner_factory, lambda svc: svc.render(args.name, actor=actor, output_dir=args.output_dir)
        )
        print(path)
        return EXIT_OK

    if args.command == "validate":
        report = await _with_service(
            settings, runner_factory, lambda svc: svc.validate(args.name, actor=actor, env_overrides=overrides)
        )
        _print_report(report, as_json=args.json)
        return EXIT_OK if report.ok else EXIT_FAILED

    if args.command == "up":
        outcome = await _with_service(
            settings,
            runner_factory,
            lambda svc: svc.up(args.name, actor=actor, env_overrides=overrides, wait=not args.no_wait),
        )
        for r in outcome.probes:
            print(f"{'ok ' if r.ok else 'ERR'} {r.probe.service:<20} {r.probe.url} {r.status_code or r.error}")
        if outcome.ready is None:
            print(f"{outcome.stack}: started, readiness not checked ({outcome.compose_file})")
            return EXIT_OK
        print(f"{outcome.stack}: {'ready' if outcome.ready else 'started, not ready'} ({outcome.compose_file})")
        return EXIT_OK if outcome.ready else EXIT_FAILED

    if args.command == "down":
        await _with_service(
            settings, runner_factory, lambda svc: svc.down(args.name, actor=actor, remove_volumes=args.volumes)
        )
        print(f"{args.name}: down")
        return EXIT_OK

    if args.command == "status":
        status = await _with_service(settings, runner_factory, lambda svc: svc.status(args.name))
        if args.json:
            payload: dict[str, Any] = {
                "stack": status.stack,
                "ready": status.ready,
                "services": [asdict(s) for s in status.services],
                "probes": [r.to_dict() for r in status.probes],
            }
            print(json.dumps(payload, indent=2))
        else:
            for s in status.services:
                print(f"{s.service:<24} {s.state:<10} {s.status or ''}")
            for r in status.probes:
                print(f"{'ok ' if r.ok else 'ERR'} {r.probe.url} {r.status_code or r.error}")
        return EXIT_OK if status.ready else EXIT_FAILED

    if args.command == "events":
        events = await _with_service(settings, runner_factory, lambda svc: svc.events(args.name, limit=args.limit))
        for ev in events:
            print(f"{ev.created_at.isoformat()} {ev.event_type:<12} {ev.actor:<20} {json.dumps(ev.details)}")
        return EXIT_OK

    raise AssertionError(f"unhandled command {args.command!r}")


def main(
    argv: Sequence[str] | None = None,
    *,
    settings: Settings | None = None,
    runner_factory: RunnerFactory | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = settings or get_settings()
    if args.env_file:
        settings = settings.model_copy(update={"env_file": args.env_file})

    # Logs go to stderr so stdout stays pipeable (`render --stdout | docker compose -f - ...`).
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        stream=sys.stderr,
        log_format=settings.log_format,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(command=args.command, stack=getattr(args, "name", None))

    if args.command == "serve":
        from tezedge_stacks.api.__main__ import serve

        serve(settings)
        return EXIT_OK

    try:
        return asyncio.run(_run(args, settings, runner_factory))
    except UnknownStackError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except StackValidationError as e:
        _print_report(e.report, as_json=False)
        return EXIT_FAILED
    except ComposeCommandError as e:
        log.error("compose_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        structlog.contextvars.clear_contextvars()
