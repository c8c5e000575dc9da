"""PTY process runner for a single pane.

- Forks the command in a pseudo-terminal sized to the pane
- A background thread reads the PTY master and streams raw bytes
- The same thread reaps the child and reports its exit code

Callbacks run on the reader thread; the surface is responsible for handing
them over to its event loop.

DIMENSION ORDERING:
- Our API uses (cols, rows) = (WIDTH, HEIGHT)
- PTY winsize struct is (rows, cols)
"""

from __future__ import annotations

import fcntl
import os
import pty
import select
import signal
import struct
import sys
import termios
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

OutputCallback = Callable[[bytes], None]
ExitCallback = Callable[[int], None]

CHILD_TERM = "linux"
EXEC_FAILED = 127


@dataclass
class TerminalRunner:
    name: str
    command: List[str]
    cols: int = 80
    rows: int = 24
    pid: Optional[int] = None
    master_fd: Optional[int] = None
    _reader_thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _on_output: Optional[OutputCallback] = field(default=None, init=False, repr=False)
    _on_exit: Optional[ExitCallback] = field(default=None, init=False, repr=False)
    _first_output: bytearray = field(default_factory=bytearray, init=False, repr=False)

    def on_output(self, cb: OutputCallback) -> None:
        self._on_output = cb

    def on_exit(self, cb: ExitCallback) -> None:
        """Set callback for process exit (receives exit code)."""
        self._on_exit = cb

    def first_output_preview(self, limit: int = 512) -> str:
        if not self._first_output:
            return ""
        return self._first_output[:limit].decode("utf-8", errors="replace")

    def start(self) -> None:
        """Fork the command in a PTY and begin the background read loop.

        Raises:
            OSError: if the PTY or the process cannot be created.
        """
        if self.pid is not None:
            return

        self._first_output.clear()
        pid, master = pty.fork()
        if pid == 0:
            self._exec_child()

        self.pid = pid
        self.master_fd = master
        self.set_winsize(self.rows, self.cols)

        self._stop_event.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop, name=f"pty-{self.name}", daemon=True
        )
        self._reader_thread.start()

    def _exec_child(self) -> None:
        """Runs in the forked child: size the terminal, then exec."""
        env = dict(os.environ)
        env["TERM"] = CHILD_TERM
        env["LINES"] = str(self.rows)
        env["COLUMNS"] = str(self.cols)
        try:
            fcntl.ioctl(
                sys.stdin.fileno(),
                termios.TIOCSWINSZ,
                struct.pack("HHHH", self.rows, self.cols, 0, 0),
            )
        except OSError:
            pass
        try:
            os.execvpe(self.command[0], self.command, env)
        except OSError as exc:
            os.write(2, f"panemux: cannot execute {self.command[0]}: {exc}\r\n".encode())
        os._exit(EXEC_FAILED)

    def set_winsize(self, rows: int, cols: int) -> None:
        """Set PTY window size and notify the child via SIGWINCH."""
        self.rows = rows
        self.cols = cols
        if self.master_fd is None:
            return
        try:
            fcntl.ioctl(self.master_fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))
        except OSError:
            return
        if self.pid:
            try:
                os.kill(self.pid, signal.SIGWINCH)
            except ProcessLookupError:
                pass

    def get_winsize(self) -> Optional[tuple[int, int]]:
        """Return current PTY winsize as (rows, cols) if available."""
        if self.master_fd is None:
            return None
        try:
            data = fcntl.ioctl(self.master_fd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
        except OSError:
            return None
        rows, cols, _, _ = struct.unpack("HHHH", data)
        return rows, cols

    def _reader_loop(self) -> None:
        fd = self.master_fd
        if fd is None:
            return
        while not self._stop_event.is_set():
            try:
                ready, _, _ = select.select([fd], [], [], 0.05)
            except (OSError, ValueError):
                break
            if fd not in ready:
                continue
            try:
                data = os.read(fd, 4096)
            except OSError:
                # EIO: slave side closed, the child is gone
                break
            if not data:
                break
            if len(self._first_output) < 2048:
                self._first_output.extend(data[: 2048 - len(self._first_output)])
            if self._on_output:
                self._on_output(data)

        if self._stop_event.is_set():
            return
        code = self._reap()
        if code is not None and self._on_exit and not self._stop_event.is_set():
            self._on_exit(code)

    def _reap(self) -> Optional[int]:
        pid = self.pid
        if pid is None:
            return None
        try:
            _, status = os.waitpid(pid, 0)
        except ChildProcessError:
            return None
        return os.waitstatus_to_exitcode(status)

    def write(self, data: bytes) -> None:
        """Write bytes to the child's stdin (via PTY)."""
        if self.master_fd is None:
            return
        try:
            os.write(self.master_fd, data)
        except OSError:
            pass

    def close(self) -> None:
        """Stop reading, close the PTY and kill the child if still running.

        No exit callback is delivered for a closed runner.
        """
        self._stop_event.set()
        if self.master_fd is not None:
            try:
                os.close(self.master_fd)
            except OSError:
                pass
            self.master_fd = None

        if self.pid is not None:
            try:
                os.kill(self.pid, signal.SIGKILL)
                os.waitpid(self.pid, 0)
            except (ProcessLookupError, ChildProcessError):
                pass
            self.pid = None

        if self._reader_thread and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=0.5)

    def is_alive(self) -> bool:
        if self.pid is None:
            return False
        try:
            # signal 0 doesn't kill; raises if not running
            os.kill(self.pid, 0)
        except OSError:
            return False
        return True
