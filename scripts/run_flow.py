#!/usr/bin/env python3
"""
Drive one OIDC flow hop by hop and check every response.

Usage:
  python scripts/run_flow.py code [--base-url <url>] [--resource-path <path>]
  python scripts/run_flow.py id-token --in-process [--user-hint <user>]
  python scripts/run_flow.py code --in-process --user <name> --password <pw>

Settings default to .env / OIDC_FLOW_* environment variables.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

import requests
from dotenv import load_dotenv

# プロジェクトルートをPYTHONPATHに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from api.credentials_server import build_flow_driver, code_flow_config, id_token_flow_config
from application.flow_driver import FlowDriver
from application.flows import FlowResult, run_authorization_code_flow, run_id_token_flow
from application.ports.logger import LoggerPort
from application.ports.requests_client import RequestsSessionHttpClient
from application.services.redactor import mask_url
from domain.exceptions import FlowAssertionError
from domain.flow import FlowStep
from domain.oidc import USER_HINT_HEADER
from infrastructure.config.flow_settings import FlowSettings
from infrastructure.logging.composite_logger import CompositeLogger
from infrastructure.logging.console_logger import ConsoleLogger
from infrastructure.logging.log_setup import setup_console_logging
from infrastructure.logging.memory_logger import MemoryLogger
from infrastructure.url.base_url_resolver import BaseUrlResolver

FLOWS = {
    "code": run_authorization_code_flow,
    "id-token": run_id_token_flow,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OIDC flow replay checker")
    parser.add_argument("flow", choices=sorted(FLOWS))
    parser.add_argument("--base-url", type=str)
    parser.add_argument("--resource-path", type=str)
    parser.add_argument("--user-hint", type=str)
    parser.add_argument("--user", type=str, help="submit the login form instead of relying on automatic sign-in")
    parser.add_argument("--password", type=str)
    parser.add_argument("--in-process", action="store_true", help="run against the bundled credentials server")
    parser.add_argument("--insecure", action="store_true", help="skip TLS certificate checks")
    parser.add_argument("--log-file", type=str, help="append every log event (DEBUG) to this file")
    parser.add_argument("--report", type=str, help="write the logged events of the run as JSON")
    return parser


def _apply_overrides(settings: FlowSettings, args: argparse.Namespace) -> FlowSettings:
    return FlowSettings(
        base_url=args.base_url or settings.base_url,
        resource_path=args.resource_path or settings.resource_path,
        timeout_sec=settings.timeout_sec,
        user_hint=args.user_hint or settings.user_hint,
        verify_tls=settings.verify_tls and not args.insecure,
        log_level=settings.log_level,
    )


def _build_driver(args: argparse.Namespace, settings: FlowSettings, logger: LoggerPort) -> FlowDriver:
    if args.in_process:
        config = code_flow_config() if args.flow == "code" else id_token_flow_config()
        config.automatic_sign_in = args.user is None
        return build_flow_driver(config, logger, user_hint=settings.user_hint)

    headers = {USER_HINT_HEADER: settings.user_hint} if settings.user_hint else None
    client = RequestsSessionHttpClient(
        base_headers=headers,
        timeout_sec=settings.timeout_sec,
        verify=settings.verify_tls,
    )
    return FlowDriver(client, logger, url_resolver=BaseUrlResolver(settings.base_url))


def _print_steps(steps: List[FlowStep]) -> None:
    for step in steps:
        suffix = f" -> {mask_url(step.location)}" if step.location else ""
        print(f"#{step.index} {step.name} {step.method} {mask_url(step.url)}: {step.status}{suffix}")


def _write_report(path: str, report: MemoryLogger) -> None:
    entries = [
        {"timestamp": e.timestamp.isoformat(), "level": e.level, "event": e.event, **e.fields}
        for e in report.entries
    ]
    Path(path).write_text(json.dumps(entries, indent=2, ensure_ascii=False, default=str), encoding="utf-8")


def run(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    if (args.user is None) != (args.password is None):
        raise ValueError("--user and --password must be given together")

    settings = _apply_overrides(FlowSettings.from_env(), args)
    setup_console_logging(level=settings.log_level, log_file=args.log_file)
    report = MemoryLogger()
    logger = CompositeLogger.of(ConsoleLogger(), report).bind(flow=args.flow)

    driver = _build_driver(args, settings, logger)
    credentials = (args.user, args.password) if args.user is not None else None
    resource_url = settings.resource_url
    if args.in_process:
        resource_url = "/" + settings.resource_path.lstrip("/")

    print(f"\n=== {args.flow} flow: {resource_url} ===\n")
    try:
        result: FlowResult = FLOWS[args.flow](driver, resource_url, credentials)
    finally:
        _print_steps(driver.steps)
        if args.report:
            _write_report(args.report, report)

    print("\n=== Result ===")
    print(f"Success: True ({len(result.steps)} hops)")
    return 0


def main() -> None:
    load_dotenv()
    try:
        exit_code = run()
    except FlowAssertionError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        sys.exit(1)
    except requests.RequestException as exc:
        print(f"ERROR: request failed: {exc}")
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
