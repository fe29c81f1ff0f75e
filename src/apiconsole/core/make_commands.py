"""Build-command catalog and runner.

Targets are discovered from self-documenting Makefile lines of the form
``target: deps ## description``. Running a target shells out to ``make`` and
captures stdout and stderr as one text blob.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path

from apiconsole.core.errors import MakefileError


@dataclass(frozen=True)
class MakeCommand:
    name: str
    description: str = ""


@dataclass(frozen=True)
class MakeRunResult:
    command: str
    output: str
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def parse_make_line(line: str) -> MakeCommand | None:
    """Parse one Makefile line, or None when it is not a documented target."""
    if line.count("##") != 1:
        return None
    head, _, description = line.partition("##")
    if ":" not in head:
        return None
    target = head.split(":", 1)[0].strip()
    if not target or target.startswith("."):
        return None
    return MakeCommand(name=target, description=description.strip())


def parse_makefile_text(text: str) -> list[MakeCommand]:
    commands = []
    for line in text.splitlines():
        command = parse_make_line(line)
        if command is not None:
            commands.append(command)
    return commands


def load_make_commands(path: Path) -> list[MakeCommand]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MakefileError(str(path), exc.strerror or str(exc)) from exc
    return parse_makefile_text(text)


def error_banner(command: str, reason: str, output: str) -> str:
    return f"Error executing 'make {command}': {reason}\n\nOutput:\n{output}"


def _kill(process: subprocess.Popen) -> None:
    if process.poll() is not None:
        return
    if os.name == "posix":
        # make runs recipes in its own children; take down the whole group.
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:
        process.kill()


class ProcessRegistry:
    """Child processes of running targets, killed together on shutdown."""

    def __init__(self):
        self._lock = threading.Lock()
        self._processes: set[subprocess.Popen] = set()
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)

    def add(self, process: subprocess.Popen) -> None:
        with self._lock:
            if not self._closed:
                self._processes.add(process)
                return
        _kill(process)

    def discard(self, process: subprocess.Popen) -> None:
        with self._lock:
            self._processes.discard(process)

    def kill_all(self) -> int:
        """Kill every live process and refuse new ones. Returns how many were live."""
        with self._lock:
            self._closed = True
            processes = list(self._processes)
            self._processes.clear()
        for process in processes:
            _kill(process)
        return len(processes)


def run_make_command(
    command: str,
    *,
    cwd: Path | None = None,
    executable: str = "make",
    processes: ProcessRegistry | None = None,
) -> MakeRunResult:
    """Run ``make <command>`` to completion.

    There is no timeout. When ``processes`` is given the child is registered
    there while it runs, so the owner can kill it early.
    """
    try:
        process = subprocess.Popen(
            [executable, command],
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            start_new_session=True,
        )
    except OSError as exc:
        return MakeRunResult(command, error_banner(command, str(exc), ""), exit_code=127)

    if processes is not None:
        processes.add(process)
    try:
        output, _ = process.communicate()
    finally:
        if processes is not None:
            processes.discard(process)

    output = output or ""
    if process.returncode != 0:
        output = error_banner(command, f"exit status {process.returncode}", output)
    return MakeRunResult(command, output, process.returncode)
