"""
Executable resolution for launched servers.

Maps the logical command a user configured (``npx``, ``uvx``, ``server.cmd``)
to what the operating system can actually execute. On Windows, scripts
have to be run through their interpreter: batch files through ``cmd.exe``,
PowerShell scripts through ``PowerShell.exe``, Python scripts through the
running interpreter.
"""

import os
import sys
from typing import List, Mapping, NamedTuple, Optional, Sequence


WINDOWS_EXTENSIONS = (".exe", ".bat", ".cmd", ".ps1")


class ResolvedExecutable(NamedTuple):
    """Concrete command and argument list handed to the process launcher."""

    command: str
    args: List[str]


def run_down_path(executable: str, search_path: Optional[str] = None) -> str:
    """
    Find ``executable`` along a PATH-style search path.

    Names containing a directory component are returned unchanged, as is
    any name that cannot be found.
    """
    if not executable or os.path.dirname(executable):
        return executable

    if search_path is None:
        search_path = os.environ.get("PATH", os.defpath)

    for directory in search_path.split(os.pathsep):
        if not directory:
            continue
        candidate = os.path.join(directory, executable)
        if os.path.isfile(candidate):
            return candidate
    return executable


def find_actual_executable(
    command: str,
    args: Sequence[str],
    *,
    platform: Optional[str] = None,
    search_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ResolvedExecutable:
    """
    Resolve a logical command name and its arguments.

    Args:
        command: Command as configured by the user
        args: Arguments for the command
        platform: Platform to resolve for (defaults to sys.platform)
        search_path: PATH to search (defaults to the environment's PATH)
        environ: Environment consulted for PATH and SYSTEMROOT

    Returns:
        ResolvedExecutable with the command to launch and its full arguments
    """
    platform = platform or sys.platform
    env = os.environ if environ is None else environ
    if search_path is None:
        search_path = env.get("PATH", os.defpath)

    if platform != "win32":
        return ResolvedExecutable(run_down_path(command, search_path), list(args))

    if command and not os.path.exists(command):
        # A bare "tool" has to be found as tool.exe, tool.cmd, ...
        for extension in WINDOWS_EXTENSIONS:
            candidate = run_down_path(f"{command}{extension}", search_path)
            if os.path.exists(candidate):
                return find_actual_executable(
                    candidate, args, platform=platform, search_path=search_path, environ=env
                )

    system_root = env.get("SYSTEMROOT", r"C:\Windows")
    lowered = command.lower()

    if lowered.endswith(".ps1"):
        powershell = os.path.join(
            system_root, "System32", "WindowsPowerShell", "v1.0", "PowerShell.exe"
        )
        return ResolvedExecutable(
            powershell,
            ["-ExecutionPolicy", "Unrestricted", "-NoLogo", "-NonInteractive", "-File", command, *args],
        )

    if lowered.endswith((".bat", ".cmd")):
        return ResolvedExecutable(
            os.path.join(system_root, "System32", "cmd.exe"), ["/C", command, *args]
        )

    if lowered.endswith(".py"):
        return ResolvedExecutable(sys.executable, [command, *args])

    return ResolvedExecutable(command, list(args))
