from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
import shlex
import subprocess

logger = logging.getLogger(__name__)


class ToolingError(Exception):
    """Raised when an external tool cannot be run or produces unusable output."""

    pass


@dataclass
class CommandResult:
    success: bool
    returncode: int | None = None
    output: bytes | None = None

    def text(self) -> str:
        if not self.output:
            return ""
        return self.output.decode("utf-8", errors="replace")


def run_cmd(
    cmd: list[str],
    cwd: Path | str | None = None,
    log_level: int = logging.DEBUG,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run a command, streaming its combined stdout/stderr into the log.

    A non-zero exit status is returned to the caller, never raised. Only a
    command that cannot be started at all raises ToolingError.
    """
    if env:
        env = {**os.environ, **env}
    logger.debug("Running command (cwd=%s): %s", cwd, shlex.join(cmd))
    try:
        process = subprocess.Popen(  # noqa: S603
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=cwd,
            env=env,
        )
    except OSError as e:
        raise ToolingError(f"failed to run {cmd[0]}: {e}") from e

    output = b""
    assert process.stdout is not None
    for line in iter(process.stdout.readline, b""):
        output += line
        logger.log(log_level, line.rstrip(b"\n").decode(errors="ignore"))

    returncode = process.wait()
    logger.debug("Command exited with %d: %s", returncode, shlex.join(cmd))
    return CommandResult(success=returncode == 0, returncode=returncode, output=output)


def check_output(cmd: list[str], cwd: Path | str | None = None) -> str:
    """Run a command whose output is required and return it stripped."""
    result = run_cmd(cmd, cwd=cwd)
    if not result.success:
        raise ToolingError(f"{shlex.join(cmd)} exited with status {result.returncode}: {result.text().strip()}")
    return result.text().strip()
