from __future__ import annotations

from dataclasses import dataclass
import logging

from fuzzcatch.capture.artifact import Artifact
from fuzzcatch.capture.go_tool import GoTool

logger = logging.getLogger(__name__)


def reproduce_command(entry_point: str, case_id: str, package: str) -> str:
    return f"go test -run={entry_point}/{case_id} {package}"


@dataclass(frozen=True)
class Reproduction:
    command: str
    output: str
    returncode: int | None = None


@dataclass
class ReproductionRunner:
    go: GoTool

    def reproduce(self, artifact: Artifact, package: str) -> Reproduction:
        """Re-run only the failing case; a failing exit status is the expected result."""
        command = reproduce_command(artifact.entry_point, artifact.case_id, package)
        logger.info("Reproducing: %s", command)
        result = self.go.run_test(f"{artifact.entry_point}/{artifact.case_id}", package)
        if result.success:
            logger.warning("%s passed, the failure did not reproduce", command)
        return Reproduction(command=command, output=result.text(), returncode=result.returncode)
