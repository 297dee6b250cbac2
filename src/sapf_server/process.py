"""Ownership of the external sapf process and its text streams."""

import subprocess
import threading
from typing import Callable, Iterator, List, Optional

from ..logging_config import get_logger
from .errors import SessionWriteError, SpawnError

logger = get_logger(__name__)


class ProcessSession:
    """A running sapf process reached through line-oriented pipes.

    The default command wraps sapf in ``script`` so it sees a terminal and
    flushes every line. Use as a context manager to guarantee the process is
    released on exit, crash or quit.
    """

    def __init__(self, argv: List[str], encoding: str = "utf-8"):
        """Initialize the session without starting the process.

        Args:
            argv: Command line that starts sapf
            encoding: Text encoding of sapf's input and output
        """
        self.argv = list(argv)
        self.encoding = encoding
        self._process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._write_lock = threading.Lock()

    @property
    def pid(self) -> Optional[int]:
        """Get the operating system process id."""
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        """Get the exit status, or None while the process is running."""
        return self._process.poll() if self._process else None

    @property
    def is_running(self) -> bool:
        """Check whether the process has been started and not yet exited."""
        return self._process is not None and self._process.poll() is None

    def start(self) -> "ProcessSession":
        """Spawn the process.

        Returns:
            This session, for chaining

        Raises:
            SpawnError: If the process could not be started
        """
        if self._process is not None:
            raise SpawnError("Process session already started")

        logger.debug(f"Spawning: {self.argv}")
        try:
            self._process = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding=self.encoding,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise SpawnError(f"Failed to start {self.argv[0]!r}: {e}") from e

        logger.info(f"Started {self.argv[0]} (pid {self._process.pid})")
        return self

    def send(self, text: str) -> None:
        """Write one command line to the process.

        Args:
            text: Command text without the trailing newline

        Raises:
            SessionWriteError: If the input stream is closed
        """
        if self._process is None or self._process.stdin is None:
            raise SessionWriteError("Process session is not started")

        with self._write_lock:
            try:
                self._process.stdin.write(text + "\n")
                self._process.stdin.flush()
            except (OSError, ValueError) as e:
                raise SessionWriteError(f"Failed to write {text!r}: {e}") from e

    def lines(self) -> Iterator[str]:
        """Yield complete output lines until the process closes its output.

        Line terminators, including the carriage return a terminal adds, are
        stripped.
        """
        if self._process is None or self._process.stdout is None:
            raise SpawnError("Process session is not started")

        for raw in self._process.stdout:
            yield raw.rstrip("\r\n")

    def watch(
        self,
        on_line: Callable[[str], None],
        on_exit: Callable[[Optional[int]], None],
    ) -> threading.Thread:
        """Forward output lines and termination from a background thread.

        Args:
            on_line: Called with every output line, in arrival order
            on_exit: Called once with the exit status after the last line

        Returns:
            The started reader thread
        """

        def read_output():
            try:
                for line in self.lines():
                    on_line(line)
            except (OSError, ValueError) as e:
                logger.warning(f"Output stream closed unexpectedly: {e}")
            returncode = self._process.wait()
            logger.debug(f"Reader finished, exit status {returncode}")
            on_exit(returncode)

        self._reader = threading.Thread(
            target=read_output, name="sapf-reader", daemon=True
        )
        self._reader.start()
        return self._reader

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for the process to exit.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Returns:
            The exit status, or None if the process is still running
        """
        if self._process is None:
            return None
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def close(self, timeout: float = 2.0) -> Optional[int]:
        """Terminate the process and release its streams.

        Args:
            timeout: Seconds to wait for each shutdown step

        Returns:
            The exit status, or None if the process was never started
        """
        if self._process is None:
            return None

        process = self._process
        if process.stdin is not None:
            try:
                process.stdin.close()
            except OSError as e:
                logger.debug(f"Ignoring error closing stdin: {e}")

        if process.poll() is None:
            logger.debug(f"Terminating pid {process.pid}")
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning(f"pid {process.pid} ignored SIGTERM, killing it")
                process.kill()
                process.wait(timeout=timeout)

        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(timeout=timeout)

        if process.stdout is not None:
            process.stdout.close()

        return process.returncode

    def __enter__(self):
        if self._process is None:
            self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
