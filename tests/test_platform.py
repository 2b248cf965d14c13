"""Tests for launch command construction."""

from __future__ import annotations

from claudesidebar.terminal.platform import (
    WSL_EXECUTABLE,
    assistant_command,
    build_launch_spec,
    clean_env,
    to_wsl_path,
)

ENV = {
    "PATH": "/usr/bin",
    "SHELL": "/bin/zsh",
    "HOME": "/wrong",
    "CLAUDECODE": "1",
    "CLAUDE_CODE_ENTRYPOINT": "cli",
}


class TestWslPath:
    """Drive-letter translation for WSL."""

    def test_backslash_path(self) -> None:
        assert to_wsl_path("C:\\Users\\alice\\proj") == "/mnt/c/Users/alice/proj"

    def test_forward_slash_path(self) -> None:
        assert to_wsl_path("D:/work/repo") == "/mnt/d/work/repo"

    def test_drive_root(self) -> None:
        assert to_wsl_path("E:\\") == "/mnt/e/"

    def test_posix_path_unchanged(self) -> None:
        assert to_wsl_path("/home/u/proj") == "/home/u/proj"

    def test_empty_unchanged(self) -> None:
        assert to_wsl_path("") == ""


class TestCleanEnv:
    """Environment sanitization."""

    def test_home_pinned_and_markers_dropped(self) -> None:
        env = clean_env(ENV, "/home/u")
        assert env["HOME"] == "/home/u"
        assert "CLAUDECODE" not in env
        assert "CLAUDE_CODE_ENTRYPOINT" not in env
        assert env["PATH"] == "/usr/bin"

    def test_source_not_mutated(self) -> None:
        source = dict(ENV)
        clean_env(source, "/home/u")
        assert source == ENV


class TestLaunchSpec:
    """Argument vectors per platform."""

    def test_resume_flag(self) -> None:
        assert assistant_command("claude", True) == "claude --continue"
        assert assistant_command("claude", False) == "claude"

    def test_posix(self) -> None:
        spec = build_launch_spec(
            "/home/u/proj", command="claude", platform="linux", environ=ENV, home="/home/u"
        )
        assert spec.executable == "/bin/zsh"
        assert spec.argv == ["/bin/zsh", "-c", "cd /home/u/proj && claude; exec /bin/zsh"]
        assert spec.cwd == "/home/u/proj"
        assert spec.env["HOME"] == "/home/u"
        assert "CLAUDECODE" not in spec.env

    def test_posix_default_shell(self) -> None:
        env = {k: v for k, v in ENV.items() if k != "SHELL"}
        spec = build_launch_spec("/tmp", platform="darwin", environ=env, home="/home/u")
        assert spec.executable == "/bin/bash"

    def test_explicit_shell_wins(self) -> None:
        spec = build_launch_spec(
            "/tmp", shell="/bin/sh", platform="linux", environ=ENV, home="/home/u"
        )
        assert spec.argv[0] == "/bin/sh"
        assert spec.argv[2].endswith("; exec /bin/sh")

    def test_empty_cwd_defaults_to_home(self) -> None:
        spec = build_launch_spec(
            None, resume=True, command="claude", platform="linux", environ=ENV, home="/home/u"
        )
        assert spec.cwd == "/home/u"
        assert spec.argv[2] == "cd /home/u && claude --continue; exec /bin/zsh"

    def test_directory_is_shell_quoted(self) -> None:
        spec = build_launch_spec(
            '/tmp/a "b" $(touch x)`id`', command="claude", platform="linux",
            environ=ENV, home="/home/u",
        )
        assert spec.argv[2] == "cd '/tmp/a \"b\" $(touch x)`id`' && claude; exec /bin/zsh"

        spec = build_launch_spec(
            "/tmp/it's", command="claude", platform="linux", environ=ENV, home="/home/u"
        )
        assert spec.argv[2] == "cd '/tmp/it'\"'\"'s' && claude; exec /bin/zsh"

    def test_wsl_directory_is_shell_quoted(self) -> None:
        spec = build_launch_spec(
            "D:\\My Projects\\$x", command="claude", platform="win32",
            environ=ENV, home="C:\\Users\\alice",
        )
        assert spec.argv[3] == "cd '/mnt/d/My Projects/$x' && claude; exec bash"

    def test_windows_runs_through_wsl(self) -> None:
        spec = build_launch_spec(
            "C:\\Users\\alice\\proj",
            resume=True,
            command="claude",
            platform="win32",
            environ=ENV,
            home="C:\\Users\\alice",
        )
        assert spec.executable == WSL_EXECUTABLE
        assert spec.argv == [
            "wsl.exe",
            "bash",
            "-c",
            "cd /mnt/c/Users/alice/proj && claude --continue; exec bash",
        ]
        assert spec.cwd == "C:\\Users\\alice\\proj"

    def test_terminal_settings_carried(self) -> None:
        spec = build_launch_spec(
            "/tmp", platform="linux", environ=ENV, home="/h",
            term_name="xterm", cols=80, rows=24,
        )
        assert (spec.term_name, spec.cols, spec.rows) == ("xterm", 80, 24)
