import logging
import os
import subprocess
import time
from typing import Any, Dict, List, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["console", "configure_logging", "disable_color", "SubprocessHandler"]

console = Console()


def configure_logging(verbosity: int = 0) -> None:
    """Route log records through rich.

    Args:
        verbosity: 0 for warnings only, 1 for info, 2 or more for debug.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=verbosity >= 2)],
        force=True,
    )


def disable_color() -> None:
    """Switch the shared console to plain output."""
    console.no_color = True


class SubprocessHandler:
    """Runs external commands with a timeout and guaranteed cleanup.

    A process that outlives its timeout is terminated, then killed if it
    ignores the termination request, so a hung command can never block the
    caller forever.
    """

    def __init__(self, timeout: Optional[float] = None,
                 max_termination_retries: Optional[int] = None,
                 termination_wait: Optional[float] = None) -> None:
        """Initialize the handler.

        Args:
            timeout: Maximum time in seconds to wait for a process to complete.
            max_termination_retries: Maximum number of attempts to terminate a process.
            termination_wait: Time to wait between termination attempts in seconds.
        """
        self.timeout: float = timeout or 30
        self.max_termination_retries: int = max_termination_retries or 3
        self.termination_wait: float = termination_wait or 0.5

    @staticmethod
    def create_env() -> Dict[str, str]:
        """Create environment with explicit encoding settings for subprocess.

        Returns:
            Dict[str, str]: Environment variables dictionary with encoding settings.
        """
        env = os.environ.copy()
        env['PYTHONIOENCODING'] = 'utf-8'
        # Never block on an interactive credential or editor prompt.
        env['GIT_TERMINAL_PROMPT'] = '0'
        return env

    def run_command(self, command: List[str], cwd: Optional[str] = None,
                    timeout: Optional[float] = None) -> Tuple[str, str, int]:
        """Execute a command and return its output.

        Args:
            command: Command to execute as a list of strings.
            cwd: Working directory for the command.
            timeout: Overrides the handler's default timeout for this call.

        Returns:
            Tuple[str, str, int]: stdout, stderr, and return code.

        Raises:
            TimeoutError: If the process exceeds the timeout.
            OSError: If the command cannot be started.
        """
        limit = timeout or self.timeout
        process: Optional[subprocess.Popen[Any]] = None
        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                cwd=cwd,
                text=True,
                encoding='utf-8',
                errors='replace',
                env=self.create_env(),
            )
            stdout, stderr = process.communicate(timeout=limit)
            return stdout, stderr, process.returncode
        except subprocess.TimeoutExpired:
            self._terminate_process(process)
            raise TimeoutError(f"Command timed out after {limit} seconds: {' '.join(command)}")
        finally:
            self._cleanup_process(process)

    def _terminate_process(self, process: Optional[subprocess.Popen[Any]]) -> None:
        """Terminate a process with multiple attempts if needed.

        Args:
            process: The subprocess.Popen object to terminate.
        """
        if process is None or process.poll() is not None:
            return

        try:
            process.terminate()
            for _ in range(self.max_termination_retries):
                if process.poll() is not None:
                    return
                time.sleep(self.termination_wait)

            if process.poll() is None:
                process.kill()
        except OSError:
            # Process already gone
            pass

    def _cleanup_process(self, process: Optional[subprocess.Popen[Any]]) -> None:
        if process is None:
            return

        for fd in [process.stdout, process.stderr]:
            if fd is not None:
                try:
                    fd.close()
                except OSError:
                    pass

        self._terminate_process(process)
