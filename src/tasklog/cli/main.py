# src/tasklog/cli/main.py

"""
CLI entrypoint.

Initializes logging, takes the store lock, replays the effect log, runs one
command and persists the new effects.

Exit codes:
- 0 success
- 1 lock or storage failure
- 2 malformed command or task reference
- 3 some task references could not be resolved (resolved ones were applied)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence

from ..config import get_settings
from ..locks import LockError, store_lock
from ..logging_setup import setup_logging
from ..tasks.task_ref import TaskRefError
from ..tasks.task_store import StorageError
from .bootstrap import create_initial_state, save_state
from .commands import CommandParseError, registry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STORAGE = 1
EXIT_USAGE = 2
EXIT_UNRESOLVED = 3


def run(argv: Sequence[str], settings) -> int:
    try:
        command = registry.parse(argv)
    except (CommandParseError, TaskRefError) as exc:
        logger.info("Parse error for %s: %s", list(argv), exc)
        print(f"Error while parsing command: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        with store_lock(settings.lock_path):
            state = create_initial_state(settings=settings)
            registry.execute(state, command)
            save_state(state)
    except LockError as exc:
        logger.error("%s", exc)
        return EXIT_STORAGE
    except StorageError:
        logger.exception("Task store failure.")
        return EXIT_STORAGE

    return EXIT_UNRESOLVED if state.failures else EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "WARNING")).upper()
    console_level = getattr(logging, level_name, logging.WARNING)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    args = list(sys.argv[1:] if argv is None else argv)
    logger.debug("Starting %s with args %s", settings.app_name, args)
    return run(args, settings)


if __name__ == "__main__":
    sys.exit(main())
