import logging
import os
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional, Union

from calc_agent.config import TIMEOUT_MESSAGE

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"
CHUNK_SIZE = 8192
# How long to wait for the output pumps once a timed-out process group was killed
PUMP_JOIN_GRACE_S = 5.0


class TeeWriter:
    """Appends output chunks to a capture buffer and mirrors them to a stream."""

    def __init__(self, mirror: IO):
        self._mirror = mirror
        self._buffer = bytearray()
        self._lock = threading.Lock()

    def write(self, chunk: bytes) -> None:
        with self._lock:
            self._buffer.extend(chunk)
            raw = getattr(self._mirror, "buffer", None)
            if raw is not None:
                self._mirror.flush()
                raw.write(chunk)
                raw.flush()
            else:
                self._mirror.write(chunk.decode("utf-8", errors="replace"))
                self._mirror.flush()

    def append_line(self, text: str) -> None:
        # captured only, the operator already sees the process outcome in the logs
        with self._lock:
            if self._buffer and not self._buffer.endswith(b"\n"):
                self._buffer.extend(b"\n")
            self._buffer.extend(text.encode("utf-8") + b"\n")

    def getvalue(self) -> str:
        with self._lock:
            return self._buffer.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    returncode: Optional[int]
    timed_out: bool


def shell_argv(command: str) -> List[str]:
    if command.startswith('"'):
        command = command[1:]
    if command.endswith('"'):
        command = command[:-1]
    if IS_WINDOWS:
        return ["cmd", "/c", command]
    return ["bash", "-c", command]


def describe_exit(returncode: Optional[int]) -> Optional[str]:
    if not returncode:
        return None
    if returncode > 0:
        return f"exit status {returncode}"
    try:
        name = signal.Signals(-returncode).name
    except ValueError:
        name = str(-returncode)
    return f"signal: {name}"


def _pump(stream: IO[bytes], sink: TeeWriter) -> None:
    with stream:
        for chunk in iter(lambda: stream.read1(CHUNK_SIZE), b""):
            sink.write(chunk)


class ProcessRunner:
    def _kill(self, proc: subprocess.Popen) -> None:
        if IS_WINDOWS:
            proc.kill()
            return
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            pass

    def run(self, command: str, workdir: Union[str, Path], timeout: float) -> ProcessResult:
        out = TeeWriter(sys.stdout)
        err = TeeWriter(sys.stderr)

        popen_kwargs = {} if IS_WINDOWS else {"start_new_session": True}
        proc = subprocess.Popen(
            shell_argv(command),
            cwd=str(workdir),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            **popen_kwargs,
        )
        deadline = time.monotonic() + timeout
        pumps = [
            threading.Thread(target=_pump, args=(proc.stdout, out), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, err), daemon=True),
        ]
        for p in pumps:
            p.start()

        killed = False
        try:
            proc.wait(timeout=max(timeout, 0))
        except subprocess.TimeoutExpired:
            logger.warning("Command exceeded %ss, killing pid %s", timeout, proc.pid)
            self._kill(proc)
            killed = True
            proc.wait()

        if not killed:
            # background children may still hold the pipes after the shell exits
            for p in pumps:
                p.join(max(deadline - time.monotonic(), 0))
            if any(p.is_alive() for p in pumps):
                logger.warning("Output of pid %s still open after %ss, killing its group", proc.pid, timeout)
                self._kill(proc)
                killed = True
        for p in pumps:
            p.join(PUMP_JOIN_GRACE_S)

        # Both outcomes are reported when they both apply
        exit_message = describe_exit(proc.returncode)
        if exit_message:
            err.append_line(exit_message)
        timed_out = killed or time.monotonic() >= deadline
        if timed_out:
            err.append_line(TIMEOUT_MESSAGE)

        return ProcessResult(
            stdout=out.getvalue(),
            stderr=err.getvalue(),
            returncode=proc.returncode,
            timed_out=timed_out,
        )
