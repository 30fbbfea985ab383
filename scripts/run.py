#!/usr/bin/env python3
"""Resurrector entrypoint — wires the controller and feeds it alerts from stdin.

Alerts arrive as newline-delimited JSON payloads::

    {"deployment": "d", "job": "j", "instance_id": "i", "severity": 1}
    {"deployment": "d", "jobs_to_instance_ids": {"j": ["i1", "i2"]}, "severity": 1}

Usage::

    # Run with default config
    some-alert-source | python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml < alerts.ndjson

    # Override log level
    python scripts/run.py --log-level DEBUG
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys

import structlog

from resurrector.core.config import load_settings
from resurrector.core.logging import setup_logging
from resurrector.director.exceptions import ConfigurationError
from resurrector.health.controller import ResurrectorController

logger = structlog.get_logger(__name__)


async def _read_alerts(
    controller: ResurrectorController,
    stop_event: asyncio.Event,
) -> None:
    """Read NDJSON alert payloads from stdin, processing each concurrently."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)

    pending: set[asyncio.Task[object]] = set()
    while not stop_event.is_set():
        line = await reader.readline()
        if not line:
            break
        line = line.strip()
        if not line:
            continue
        try:
            payload = json.loads(line)
        except ValueError:
            logger.warning("alert_payload_invalid_json", line=line[:200].decode(errors="replace"))
            continue
        if not isinstance(payload, dict):
            logger.warning("alert_payload_not_object")
            continue
        task = asyncio.create_task(controller.on_payload(payload))
        pending.add(task)
        task.add_done_callback(pending.discard)

    if pending:
        await asyncio.wait(pending)
    stop_event.set()


async def run(args: argparse.Namespace) -> int:
    """Start the controller and process alerts until EOF or a signal."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    logger.info(
        "resurrector_starting",
        director=settings.director.endpoint,
        meltdown_threshold=settings.alert_tracker.meltdown_threshold,
        window_secs=settings.alert_tracker.window_secs,
    )

    try:
        controller = ResurrectorController(settings)
    except ConfigurationError as exc:
        logger.error("resurrector_misconfigured", error=str(exc))
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    if not controller.run():
        await controller.close()
        return 1
    await controller.wait_until_ready()

    # ── Wait for EOF or shutdown signal ──────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    reader_task = asyncio.create_task(_read_alerts(controller, stop_event))
    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("resurrector_shutting_down")
    if not reader_task.done():
        reader_task.cancel()
        try:
            await reader_task
        except asyncio.CancelledError:
            pass

    await controller.stop()
    await controller.close()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run the deployment resurrector against a director.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
