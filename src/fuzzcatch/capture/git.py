from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging

from fuzzcatch.common.command import ToolingError, check_output, run_cmd

logger = logging.getLogger(__name__)


@dataclass
class GitRepo:
    """Working tree and index operations, run from the fuzzing working directory."""

    working_directory: Path | str = "."
    git_path: str = "git"

    def _cmd(self, *args: str) -> list[str]:
        return [self.git_path, *args]

    def stage_all(self) -> None:
        check_output(self._cmd("add", "."), cwd=self.working_directory)

    def has_staged_changes(self) -> bool:
        result = run_cmd(self._cmd("diff", "--cached", "--exit-code", "--quiet"), cwd=self.working_directory)
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise ToolingError(f"git diff --cached exited with status {result.returncode}: {result.text().strip()}")

    def staged_paths(self) -> list[str]:
        """Paths added or modified in the index, relative to the repository root."""
        output = check_output(
            self._cmd("diff", "--name-only", "--cached", "--no-renames", "--diff-filter=d"),
            cwd=self.working_directory,
        )
        return [line for line in output.splitlines() if line]

    def staged_patch(self, path: str) -> str:
        return check_output(self._cmd("diff", "--cached", "--", f":/{path}"), cwd=self.working_directory)

    def head_commit(self) -> str:
        return check_output(self._cmd("rev-parse", "HEAD"), cwd=self.working_directory)

    def toplevel(self) -> Path:
        return Path(check_output(self._cmd("rev-parse", "--show-toplevel"), cwd=self.working_directory))

    def restore_staged(self) -> bool:
        result = run_cmd(self._cmd("restore", "--staged", "."), cwd=self.working_directory)
        if not result.success:
            logger.warning("Failed to unstage changes: %s", result.text().strip())
        return result.success
