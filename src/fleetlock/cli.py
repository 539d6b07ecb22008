"""CLI entrypoint to run a command while holding a fleet-wide lock."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from fleetlock.core.manager import LockManager, new_token
from fleetlock.core.models import AcquireOutcome
from fleetlock.core.settings import LockSettings
from fleetlock.utils.env import get_bool_env
from fleetlock.utils.logging import configure, get_logger


EXIT_UNAVAILABLE = 69  # EX_UNAVAILABLE
EXIT_LOCKED = 75  # EX_TEMPFAIL
_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a command only if no other worker holds the lock.")
    parser.add_argument("--config", type=Path, default=None, help="Path to lock settings YAML (default: environment)")
    parser.add_argument("--key", required=True, help="Lock key, e.g. publish:feed-42")
    parser.add_argument("--owner", default=None, help="Owner label embedded in the lock token")
    parser.add_argument("--fail-if-locked", action="store_true", help=f"Exit with {EXIT_LOCKED} when skipped")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run (after --)")
    args = parser.parse_args(argv)
    if args.config is not None and not args.config.is_file():
        parser.error(f"config file not found: {args.config}")
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if not args.command:
        parser.error("a command to run is required")
    return args


def _exit_code(returncode: int) -> int:
    # a child killed by signal N reports -N; shells report 128 + N
    return 128 - returncode if returncode < 0 else returncode


async def _run_child(command: List[str], cancel: asyncio.Event, logger: logging.Logger) -> int:
    process = await asyncio.create_subprocess_exec(*command)
    waiter = asyncio.ensure_future(process.wait())
    stopper = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({waiter, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
    if not waiter.done():
        logger.warning("Shutdown requested; terminating %s (pid %d)", command[0], process.pid)
        process.terminate()
    return _exit_code(await waiter)


async def main(
    argv: Optional[List[str]] = None,
    *,
    manager: Optional[LockManager] = None,
    cancel: Optional[asyncio.Event] = None,
) -> int:
    args = _parse_args(argv)
    configure(logging.DEBUG if args.verbose else logging.INFO, rich=get_bool_env("FLEETLOCK_RICH_LOGS", default=True))
    logger = get_logger(__name__)

    owns_manager = manager is None
    if manager is None:
        settings = LockSettings.from_file(args.config) if args.config else LockSettings.from_env()
        manager = LockManager.from_settings(settings)
    cancel = cancel or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed = []
    for sig in _SIGNALS:
        try:
            loop.add_signal_handler(sig, cancel.set)
        except (NotImplementedError, RuntimeError):  # pragma: no cover - windows / non-main thread
            continue
        installed.append(sig)

    try:
        async with manager.lock(args.key, token=new_token(args.owner), cancel=cancel) as result:
            if result.outcome is AcquireOutcome.STORE_ERROR:
                logger.warning("Lock store unreachable; not running %s", args.key)
                return EXIT_UNAVAILABLE
            if not result:
                logger.info("Lock %s not acquired (%s); skipping", args.key, result.outcome.value)
                return EXIT_LOCKED if args.fail_if_locked else 0
            logger.info("Holding %s; running %s", args.key, " ".join(args.command))
            return await _run_child(args.command, cancel, logger)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        if owns_manager:
            await manager.aclose()


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
