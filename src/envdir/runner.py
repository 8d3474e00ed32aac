from __future__ import annotations

import logging
import os
import shutil
import signal
import subprocess
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from envdir.environment import environment_strings

logger = logging.getLogger(__name__)

SIGNAL_EXIT_OFFSET = 128
TERMINAL_SIGNALS = (signal.SIGINT, signal.SIGQUIT)


class RunnerError(RuntimeError):
    pass


class CommandSpawnError(RunnerError):
    pass


@dataclass(frozen=True, slots=True)
class Invocation:
    program: str
    arguments: list[str] = field(default_factory=list)
    environment: dict[str, str] = field(default_factory=dict)

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.arguments]

    @property
    def environment_list(self) -> list[str]:
        return environment_strings(self.environment)


def resolve_program(program: str, search_path: str | None = None) -> str:
    """Locate ``program`` on our own ``PATH``, not the child's."""
    if search_path is None:
        search_path = os.environ.get("PATH", os.defpath)

    resolved = shutil.which(program, path=search_path)
    if resolved is None:
        if os.sep in program:
            raise CommandSpawnError(f"{program}: not an executable file")
        raise CommandSpawnError(f"{program}: executable file not found in $PATH")
    return resolved


def exit_code_from_returncode(returncode: int) -> int:
    # subprocess reports death by signal N as -N
    if returncode < 0:
        return SIGNAL_EXIT_OFFSET - returncode
    return returncode


@contextmanager
def _terminal_signals_ignored() -> Iterator[None]:
    """Leave terminal interrupts to the child while we wait for it."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {signum: signal.signal(signum, signal.SIG_IGN) for signum in TERMINAL_SIGNALS}
    try:
        yield
    finally:
        for signum, handler in previous.items():
            if handler is not None:
                signal.signal(signum, handler)


def run_command(invocation: Invocation) -> int:
    """Run the invocation with inherited stdio and return the code to exit with."""
    executable = resolve_program(invocation.program)
    logger.debug("running %s with %d variables", executable, len(invocation.environment))

    try:
        process = subprocess.Popen(
            invocation.argv,
            executable=executable,
            env=invocation.environment,
        )
    except OSError as exc:
        raise CommandSpawnError(f"{invocation.program}: {exc.strerror or exc}") from exc

    # Ignored only after the spawn: SIG_IGN would survive exec in the child.
    with _terminal_signals_ignored():
        returncode = process.wait()

    if returncode < 0:
        logger.debug("%s terminated by signal %d", invocation.program, -returncode)
    return exit_code_from_returncode(returncode)
