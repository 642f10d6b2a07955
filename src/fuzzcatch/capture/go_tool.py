from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import json
import logging

from pydantic import BaseModel, ValidationError

from fuzzcatch.common.command import CommandResult, ToolingError, check_output, run_cmd
from fuzzcatch.common.types import FuzzRunRequest

logger = logging.getLogger(__name__)

FUZZ_PREFIX = "Fuzz"


class GoTestEvent(BaseModel):
    """One line of `go test -json` output (see `go doc test2json`)."""

    Time: str | None = None
    Action: str
    Package: str | None = None
    Test: str | None = None
    Output: str | None = None
    Elapsed: float | None = None


@dataclass(frozen=True, order=True)
class FuzzTest:
    package: str
    func: str


@dataclass
class GoTool:
    """Thin wrapper around the go command."""

    working_directory: Path | str = "."
    go_path: str = "go"

    def _cmd(self, *args: str) -> list[str]:
        return [self.go_path, *args]

    def fuzz(self, request: FuzzRunRequest) -> CommandResult:
        logger.info(
            "Fuzzing %s | regexp=%s | fuzztime=%s | minimizetime=%s",
            request.package,
            request.fuzz_regexp,
            request.fuzz_time,
            request.fuzz_minimize_time,
        )
        cmd = self._cmd(
            "test",
            f"-fuzz={request.fuzz_regexp}",
            f"-fuzztime={request.fuzz_time}",
            f"-fuzzminimizetime={request.fuzz_minimize_time}",
            request.package,
        )
        return run_cmd(cmd, cwd=self.working_directory, log_level=logging.INFO)

    def run_test(self, run_regexp: str, package: str) -> CommandResult:
        return run_cmd(self._cmd("test", f"-run={run_regexp}", package), cwd=self.working_directory)

    def package_name(self, package: str) -> str:
        return check_output(self._cmd("list", package), cwd=self.working_directory)

    def gocache(self) -> Path:
        return Path(check_output(self._cmd("env", "GOCACHE"), cwd=self.working_directory))

    def list_fuzz_tests(self, packages: list[str], tags: str | None = None) -> list[FuzzTest]:
        """List the fuzz tests of the given packages, sorted by package and function."""
        args = ["test", "-list", f"^{FUZZ_PREFIX}", "-json", "-run", "^$"]
        if tags:
            args += ["-tags", tags]
        args += packages
        output = check_output(self._cmd(*args), cwd=self.working_directory)
        return parse_fuzz_tests(output)


def parse_fuzz_tests(output: str) -> list[FuzzTest]:
    tests = []
    for line in output.splitlines():
        if not line.strip():
            continue
        try:
            event = GoTestEvent.model_validate(json.loads(line))
        except (ValueError, ValidationError) as e:
            raise ToolingError(f"unexpected output from go test -json: {line!r}") from e

        if event.Action != "output" or event.Output is None or not event.Output.startswith(FUZZ_PREFIX):
            continue
        tests.append(FuzzTest(package=event.Package or "", func=f"^{event.Output.strip()}$"))

    return sorted(tests)
