"""Ownership of the engine child process and its three pipes."""

from __future__ import annotations

import os
import subprocess
import sys
import threading
import weakref
from pathlib import Path
from typing import IO, Mapping, Optional, Sequence, Union

from . import logging_utils
from .errors import (
    EngineIOError,
    EngineNotFoundError,
    EngineTimeoutError,
    PipeClosedError,
    SpawnError,
    UnsupportedPlatformError,
)

SUPPORTED_PLATFORMS = ("win32", "linux")
KILL_WAIT_SECONDS = 5.0
DRAIN_JOIN_SECONDS = 2.0

logger = logging_utils.get_logger(__name__)


def _kill_process(proc: subprocess.Popen, drain: Optional[threading.Thread] = None) -> None:
    """Kill ``proc``, wait for the stderr drain to finish and close the pipes.

    Never raises.
    """
    try:
        if proc.poll() is None:
            proc.kill()
    except OSError:
        pass
    try:
        proc.wait(timeout=KILL_WAIT_SECONDS)
    except subprocess.TimeoutExpired:
        logger.warning("Engine pid=%s did not exit after kill", proc.pid)
    if drain is not None and drain is not threading.current_thread():
        # a dead child closes its end of stderr, so the drain sees EOF
        drain.join(timeout=DRAIN_JOIN_SECONDS)
    for stream in (proc.stdin, proc.stdout, proc.stderr):
        if stream is None:
            continue
        try:
            stream.close()
        except (OSError, ValueError):
            pass
    logger.debug("Engine pid=%s terminated (returncode=%s)", proc.pid, proc.returncode)


def _drain_stderr(stream: IO[str], pid: int) -> None:
    try:
        for line in stream:
            logger.debug("[engine %s stderr] %s", pid, line.rstrip())
    except (OSError, ValueError):
        return


class EngineProcess:
    """A spawned engine with piped stdin/stdout/stderr.

    The child is killed exactly once: on :meth:`terminate`, on garbage
    collection of the handle, or at interpreter exit, whichever comes first.
    """

    def __init__(self, proc: subprocess.Popen, executable: Path) -> None:
        if proc.stdin is None or proc.stdout is None or proc.stderr is None:
            _kill_process(proc)
            raise SpawnError("Engine must be started with all three streams piped")
        self.executable = executable
        self._proc = proc
        self._stdin = proc.stdin
        self._stdout = proc.stdout
        self._timer_lock = threading.Lock()
        self._timed_out = False
        self._stderr_thread = threading.Thread(
            target=_drain_stderr,
            args=(proc.stderr, proc.pid),
            name=f"ppocr-stderr-{proc.pid}",
            daemon=True,
        )
        self._stderr_thread.start()
        self._finalizer = weakref.finalize(self, _kill_process, proc, self._stderr_thread)

    @classmethod
    def start(
        cls,
        executable_path: Union[str, Path],
        args: Sequence[str] = (),
        working_directory: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "EngineProcess":
        """Spawn the engine.

        The working directory defaults to the executable's own directory
        because the engine resolves its model files relative to it.
        """
        if not sys.platform.startswith(SUPPORTED_PLATFORMS):
            raise UnsupportedPlatformError(f"Engine is not supported on {sys.platform}")

        exe = Path(executable_path)
        if not exe.is_file():
            raise EngineNotFoundError(str(exe))
        exe = exe.resolve()
        if not os.access(exe, os.X_OK):
            raise SpawnError(f"Engine is not executable: {exe}")

        cwd = Path(working_directory) if working_directory is not None else exe.parent
        cmd = [str(exe), *args]
        logger.info("Starting engine: %s (cwd=%s)", exe.name, cwd)
        logger.debug("Engine command line: %s", cmd)
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(cwd),
                env=dict(env) if env is not None else None,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
            )
        except OSError as exc:
            raise SpawnError(f"Failed to spawn {exe}: {exc}") from exc
        logger.debug("Engine started pid=%s", proc.pid)
        return cls(proc, exe)

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.poll()

    @property
    def alive(self) -> bool:
        return self._finalizer.alive and self._proc.poll() is None

    def terminate(self) -> None:
        """Forcefully stop the engine. Safe to call any number of times."""
        self._finalizer()

    def raw_write_line(self, text: str) -> None:
        if not self._finalizer.alive:
            raise PipeClosedError("Engine process has been terminated")
        try:
            self._stdin.write(text + "\n")
            self._stdin.flush()
        except (BrokenPipeError, ValueError) as exc:
            raise PipeClosedError(f"Engine stdin is closed: {exc}") from exc
        except OSError as exc:
            raise EngineIOError(f"Failed to write to engine: {exc}") from exc

    def raw_read_line(self, timeout: Optional[float] = None) -> str:
        """Block until the engine prints one line and return it without EOL.

        With ``timeout`` a watchdog kills the engine when no line arrives in
        time; the handle is unusable afterwards.
        """
        if not self._finalizer.alive:
            raise PipeClosedError("Engine process has been terminated")
        if timeout is None:
            return self._read_line()

        done = False

        def _expire() -> None:
            with self._timer_lock:
                if done:
                    return
                self._timed_out = True
            logger.error("Engine pid=%s unresponsive for %.1fs, killing it", self.pid, timeout)
            try:
                self._proc.kill()
            except OSError:
                pass

        watchdog = threading.Timer(timeout, _expire)
        watchdog.daemon = True
        watchdog.start()
        try:
            line = self._read_line()
        except PipeClosedError:
            if self._timed_out:
                self.terminate()
                raise EngineTimeoutError(timeout) from None
            raise
        finally:
            with self._timer_lock:
                done = True
            watchdog.cancel()
        if self._timed_out:
            self.terminate()
            raise EngineTimeoutError(timeout)
        return line

    def _read_line(self) -> str:
        try:
            line = self._stdout.readline()
        except ValueError as exc:
            raise PipeClosedError(f"Engine stdout is closed: {exc}") from exc
        except OSError as exc:
            raise EngineIOError(f"Failed to read from engine: {exc}") from exc
        if not line:
            raise PipeClosedError(
                f"Engine closed its output (returncode={self._proc.poll()})"
            )
        return line.rstrip("\r\n")

    def __repr__(self) -> str:
        state = "alive" if self.alive else "stopped"
        return f"<EngineProcess {self.executable.name} pid={self.pid} {state}>"
