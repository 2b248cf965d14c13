"""Launch command construction for assistant sessions.

Builds the executable, argument vector, working directory and environment
for a new session on the host platform. On Windows the assistant runs inside
WSL, so drive-letter paths are translated to the ``/mnt/<drive>`` convention.

Everything here is pure: no filesystem access and no process spawning.
"""

from __future__ import annotations

import os
import re
import shlex
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field

from claudesidebar.config.schema import DEFAULT_ASSISTANT_COMMAND

# Variables that make a child assistant believe it is nested in another one
NESTED_SESSION_VARS = ("CLAUDECODE", "CLAUDE_CODE_ENTRYPOINT")

WSL_EXECUTABLE = "wsl.exe"
RESUME_FLAG = "--continue"

_DRIVE_PATH_RE = re.compile(r"^([A-Za-z]):[/\\](.*)$", re.DOTALL)


@dataclass
class LaunchSpec:
    """Everything the process layer needs to start a session."""

    executable: str
    argv: list[str]
    cwd: str
    env: dict[str, str] = field(default_factory=dict)
    term_name: str = "xterm-256color"
    cols: int = 120
    rows: int = 30


def is_windows(platform: str | None = None) -> bool:
    return (platform or sys.platform) == "win32"


def to_wsl_path(path: str) -> str:
    """Translate ``X:\\a\\b`` to ``/mnt/x/a/b``.

    Paths that are not in drive-letter form are returned unchanged.
    """
    if not path:
        return path
    match = _DRIVE_PATH_RE.match(path)
    if not match:
        return path
    drive, rest = match.groups()
    return f"/mnt/{drive.lower()}/{rest.replace(chr(92), '/')}"


def clean_env(environ: Mapping[str, str], home: str) -> dict[str, str]:
    """Copy ``environ``, pin HOME and drop the nested-session markers."""
    env = dict(environ)
    env["HOME"] = home
    for name in NESTED_SESSION_VARS:
        env.pop(name, None)
    return env


def assistant_command(command: str, resume: bool) -> str:
    if resume:
        return f"{command} {RESUME_FLAG}"
    return command


def build_launch_spec(
    cwd: str | None,
    resume: bool = False,
    *,
    command: str = DEFAULT_ASSISTANT_COMMAND,
    shell: str | None = None,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
    home: str | None = None,
    term_name: str = "xterm-256color",
    cols: int = 120,
    rows: int = 30,
) -> LaunchSpec:
    """Build the launch spec for a session.

    The assistant runs through an interactive shell which is re-exec'd once
    the assistant exits, so the terminal stays usable in that directory.

    Args:
        cwd: Target directory. Defaults to ``home`` when empty.
        resume: Append the resume flag to continue the prior conversation.
        command: Assistant command line.
        shell: POSIX shell to use; defaults to $SHELL, then /bin/bash.
        platform: ``sys.platform`` value to build for (defaults to the host).
        environ: Environment to sanitize (defaults to ``os.environ``).
        home: User home directory (defaults to ``os.path.expanduser("~")``).
    """
    environ = os.environ if environ is None else environ
    home = home or os.path.expanduser("~")
    directory = cwd or home
    env = clean_env(environ, home)
    cmd = assistant_command(command, resume)

    if is_windows(platform):
        wsl_dir = to_wsl_path(directory)
        script = f"cd {shlex.quote(wsl_dir)} && {cmd}; exec bash"
        return LaunchSpec(
            executable=WSL_EXECUTABLE,
            argv=[WSL_EXECUTABLE, "bash", "-c", script],
            cwd=directory,
            env=env,
            term_name=term_name,
            cols=cols,
            rows=rows,
        )

    shell = shell or environ.get("SHELL") or "/bin/bash"
    script = f"cd {shlex.quote(directory)} && {cmd}; exec {shell}"
    return LaunchSpec(
        executable=shell,
        argv=[shell, "-c", script],
        cwd=directory,
        env=env,
        term_name=term_name,
        cols=cols,
        rows=rows,
    )
