"""
Stdio client transport.

This module launches a server as a child process and exchanges
newline-delimited JSON-RPC messages over its stdin/stdout pipes.
"""

import asyncio
import contextlib
import logging
import os
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union

from mcpconnect.protocol import (
    BatchMessage,
    Message,
    MessageValidationError,
    parse_message,
    serialize_message,
)
from mcpconnect.transport.base import (
    Transport,
    TransportCapability,
    TransportError,
    TransportInfo,
    TransportType,
)


# Variables a child process inherits when no explicit environment is given
DEFAULT_INHERITED_ENV_VARS = (
    [
        "APPDATA",
        "HOMEDRIVE",
        "HOMEPATH",
        "LOCALAPPDATA",
        "PATH",
        "PATHEXT",
        "PROCESSOR_ARCHITECTURE",
        "SYSTEMDRIVE",
        "SYSTEMROOT",
        "TEMP",
        "USERNAME",
        "USERPROFILE",
        "PROGRAMFILES",
    ]
    if sys.platform == "win32"
    else ["HOME", "LOGNAME", "PATH", "SHELL", "TERM", "USER"]
)

STDERR_MODES = {
    "pipe": asyncio.subprocess.PIPE,
    "inherit": None,
    "devnull": asyncio.subprocess.DEVNULL,
}

# Single messages may be far larger than asyncio's 64 KiB line default
STREAM_LIMIT = 16 * 1024 * 1024


def get_default_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """
    Return the baseline environment that is safe to hand to a child process.

    Args:
        environ: Environment to read from (defaults to os.environ)

    Returns:
        Mapping containing only the platform's default inherited variables
    """
    source = os.environ if environ is None else environ
    env: Dict[str, str] = {}
    for key in DEFAULT_INHERITED_ENV_VARS:
        value = source.get(key)
        if value is None:
            continue
        if value.startswith("()"):
            # Exported shell functions, not real values
            continue
        env[key] = value
    return env


class StdioClientTransport(Transport):
    """
    Transport that talks to a server process over its stdin/stdout.

    The process is spawned by ``start()``. With ``stderr="pipe"`` the
    child's diagnostics are read line by line and handed to ``on_stderr``
    (and logged at debug level) instead of being inherited.
    """

    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Mapping[str, str]] = None,
        stderr: str = "inherit",
        cwd: Optional[str] = None,
    ) -> None:
        """
        Initialize the stdio transport.

        Args:
            command: Executable to launch
            args: Arguments passed to the executable
            env: Full environment for the child (None inherits the default environment)
            stderr: How to handle the child's stderr (pipe, inherit, devnull)
            cwd: Working directory for the child

        Raises:
            ValueError: If the command is empty or the stderr mode is unknown
        """
        super().__init__()
        if not command:
            raise ValueError("Command must be a non-empty string for stdio transport")
        if stderr not in STDERR_MODES:
            raise ValueError(f"Invalid stderr mode: {stderr}")

        self.command = command
        self.args = list(args or [])
        self.env = dict(env) if env is not None else None
        self.stderr_mode = stderr
        self.cwd = cwd
        self.process: Optional[asyncio.subprocess.Process] = None
        self.on_stderr: Optional[Callable[[str], Any]] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._logger = logging.getLogger("mcpconnect.transport.stdio")

    @property
    def info(self) -> TransportInfo:
        """Get information about the transport."""
        capabilities: Set[TransportCapability] = {
            TransportCapability.BATCH_REQUESTS,
            TransportCapability.BIDIRECTIONAL,
        }
        return TransportInfo(type=TransportType.STDIO, capabilities=capabilities)

    @property
    def pid(self) -> Optional[int]:
        """Process ID of the running server, if started."""
        return self.process.pid if self.process else None

    def describe(self) -> Dict[str, Any]:
        return {
            "type": TransportType.STDIO.value,
            "command": self.command,
            "args": list(self.args),
            "env": dict(self.env) if self.env is not None else None,
            "stderr": self.stderr_mode,
            "cwd": self.cwd,
        }

    async def start(self) -> None:
        """
        Spawn the server process and start the reader tasks.

        Raises:
            TransportError: If already started or the process cannot be spawned
        """
        if self.process is not None:
            raise TransportError("Stdio transport is already started")

        env = self.env if self.env is not None else get_default_environment()
        try:
            self.process = await asyncio.create_subprocess_exec(
                self.command,
                *self.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=STDERR_MODES[self.stderr_mode],
                env=env,
                cwd=self.cwd,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            raise TransportError(f"Failed to start {self.command}: {str(e)}")

        self._close_notified = False
        self._logger.debug("Started %s (pid %s)", self.command, self.process.pid)
        self._reader_task = asyncio.create_task(self._read_loop(self.process.stdout))
        if self.stderr_mode == "pipe":
            self._stderr_task = asyncio.create_task(self._stderr_loop(self.process.stderr))

    async def send(self, message: Union[Message, BatchMessage]) -> None:
        """
        Write a message to the server's stdin.

        Raises:
            TransportError: If the transport is not started or the pipe is closed
        """
        if self.process is None or self.process.stdin is None:
            raise TransportError("Not connected")

        data = serialize_message(message) + "\n"
        try:
            self.process.stdin.write(data.encode("utf-8"))
            await self.process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise TransportError(f"Failed to write to {self.command}: {str(e)}")

    async def close(self) -> None:
        """Close stdin, wait briefly for the process to exit, then terminate it."""
        process = self.process
        if process is None:
            return
        self.process = None

        if process.stdin is not None:
            process.stdin.close()

        if process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=2.0)
            except asyncio.TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=2.0)
                except asyncio.TimeoutError:
                    with contextlib.suppress(ProcessLookupError):
                        process.kill()
                    await process.wait()

        for task in (self._reader_task, self._stderr_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._reader_task = None
        self._stderr_task = None

        await self._dispatch_close()

    async def _read_loop(self, stdout: asyncio.StreamReader) -> None:
        """Read newline-delimited messages from the server's stdout."""
        try:
            while True:
                raw = await stdout.readline()
                if not raw:
                    break

                try:
                    line = raw.decode("utf-8").strip()
                except UnicodeDecodeError as e:
                    self._logger.error(f"Undecodable line from server: {str(e)}")
                    await self._dispatch_error(e)
                    continue
                if not line:
                    continue

                try:
                    message = parse_message(line)
                except MessageValidationError as e:
                    self._logger.error(f"Invalid message from server: {e.message}")
                    await self._dispatch_error(e)
                    continue

                await self._dispatch_message(message)

        except asyncio.CancelledError:
            raise

        except Exception as e:
            self._logger.error(f"Error in read loop: {str(e)}")
            await self._dispatch_error(e)
            await self._dispatch_close()
            return

        self._logger.debug("Server closed stdout")
        await self._dispatch_close()

    async def _stderr_loop(self, stderr: asyncio.StreamReader) -> None:
        """Forward each line the server writes to stderr."""
        while True:
            raw = await stderr.readline()
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            self._logger.debug("[%s] %s", self.command, line)
            if self.on_stderr is None:
                continue
            try:
                result = self.on_stderr(line)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                self._logger.error(f"Error in stderr handler: {str(e)}")
