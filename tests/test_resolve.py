"""
Unit tests for executable resolution.
"""

import os
import sys

import pytest

from mcpconnect.resolve import ResolvedExecutable, find_actual_executable, run_down_path


@pytest.fixture
def bin_dir(tmp_path):
    """Directory holding fake executables, used as the only PATH entry."""
    for name in ("server.cmd", "setup.bat", "deploy.ps1", "tool.exe", "script.py", "posix-tool"):
        (tmp_path / name).write_text("")
    return tmp_path


class TestRunDownPath:
    """Tests for PATH searching."""

    def test_finds_in_search_path(self, bin_dir):
        assert run_down_path("posix-tool", str(bin_dir)) == os.path.join(str(bin_dir), "posix-tool")

    def test_first_match_wins(self, tmp_path):
        first = tmp_path / "first"
        second = tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "tool").write_text("")
        (second / "tool").write_text("")

        search_path = os.pathsep.join([str(first), str(second)])
        assert run_down_path("tool", search_path) == os.path.join(str(first), "tool")

    def test_unknown_name_is_unchanged(self, bin_dir):
        assert run_down_path("does-not-exist", str(bin_dir)) == "does-not-exist"

    def test_paths_are_unchanged(self, bin_dir):
        assert run_down_path("./posix-tool", str(bin_dir)) == "./posix-tool"

    def test_empty_name(self):
        assert run_down_path("", "/usr/bin") == ""


class TestPosixResolution:
    """Tests for non-Windows platforms."""

    def test_resolves_along_path(self, bin_dir):
        resolved = find_actual_executable("posix-tool", ["--flag"], platform="linux", search_path=str(bin_dir))
        assert resolved == ResolvedExecutable(os.path.join(str(bin_dir), "posix-tool"), ["--flag"])

    def test_scripts_are_not_wrapped(self, bin_dir):
        resolved = find_actual_executable("server.cmd", ["a"], platform="darwin", search_path=str(bin_dir))
        assert resolved.args == ["a"]

    def test_uses_environ_path(self, bin_dir):
        resolved = find_actual_executable("posix-tool", [], platform="linux", environ={"PATH": str(bin_dir)})
        assert resolved.command == os.path.join(str(bin_dir), "posix-tool")

    def test_args_are_copied(self, bin_dir):
        args = ["x"]
        resolved = find_actual_executable("posix-tool", args, platform="linux", search_path=str(bin_dir))
        resolved.args.append("y")
        assert args == ["x"]


class TestWindowsResolution:
    """Tests for Windows launcher handling."""

    ENVIRON = {"SYSTEMROOT": "C:\\Windows"}

    def resolve(self, command, args, bin_dir):
        return find_actual_executable(
            command, args, platform="win32", search_path=str(bin_dir), environ=self.ENVIRON
        )

    def test_cmd_runs_through_cmd_exe(self, bin_dir):
        resolved = self.resolve("server", ["--port", "3000"], bin_dir)

        assert resolved.command == os.path.join("C:\\Windows", "System32", "cmd.exe")
        assert resolved.args == ["/C", os.path.join(str(bin_dir), "server.cmd"), "--port", "3000"]

    def test_bat_runs_through_cmd_exe(self, bin_dir):
        resolved = self.resolve("setup", [], bin_dir)
        assert resolved.args == ["/C", os.path.join(str(bin_dir), "setup.bat")]

    def test_ps1_runs_through_powershell(self, bin_dir):
        resolved = self.resolve("deploy", ["-Force"], bin_dir)

        assert resolved.command == os.path.join(
            "C:\\Windows", "System32", "WindowsPowerShell", "v1.0", "PowerShell.exe"
        )
        assert resolved.args == [
            "-ExecutionPolicy",
            "Unrestricted",
            "-NoLogo",
            "-NonInteractive",
            "-File",
            os.path.join(str(bin_dir), "deploy.ps1"),
            "-Force",
        ]

    def test_exe_is_found_by_extension(self, bin_dir):
        resolved = self.resolve("tool", ["x"], bin_dir)
        assert resolved == ResolvedExecutable(os.path.join(str(bin_dir), "tool.exe"), ["x"])

    def test_python_scripts_use_interpreter(self, bin_dir):
        script = os.path.join(str(bin_dir), "script.py")
        resolved = self.resolve(script, ["--verbose"], bin_dir)
        assert resolved == ResolvedExecutable(sys.executable, [script, "--verbose"])

    def test_unknown_command_is_unchanged(self, bin_dir):
        resolved = self.resolve("missing", ["a"], bin_dir)
        assert resolved == ResolvedExecutable("missing", ["a"])
