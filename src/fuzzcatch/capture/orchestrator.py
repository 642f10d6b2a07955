from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import contextlib
import logging

from fuzzcatch.capture.artifact import Artifact, ArtifactDetector, DetectionStatus
from fuzzcatch.capture.git import GitRepo
from fuzzcatch.capture.go_tool import GoTool
from fuzzcatch.capture.report import Report
from fuzzcatch.capture.reproduce import ReproductionRunner
from fuzzcatch.common.types import FuzzRunRequest
from fuzzcatch.reporting.dispatcher import ReportDispatcher
from fuzzcatch.reporting.models import PublishResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoFailure:
    """The fuzz engine exited cleanly."""

    def result(self) -> PublishResult:
        return PublishResult(found=False)


@dataclass(frozen=True)
class NoNewArtifact:
    """The fuzz engine failed but no single new corpus file could be isolated."""

    reason: DetectionStatus

    def result(self) -> PublishResult:
        return PublishResult(found=False)


@dataclass(frozen=True)
class NewArtifact:
    report: Report
    publish_result: PublishResult

    def result(self) -> PublishResult:
        return self.publish_result


FuzzRunOutcome = NoFailure | NoNewArtifact | NewArtifact


def _remove_file(path: Path) -> None:
    path.unlink(missing_ok=True)
    logger.info("Removed %s", path)


@dataclass
class FuzzOrchestrator:
    go: GoTool
    git: GitRepo
    dispatcher: ReportDispatcher
    reproducer: ReproductionRunner = field(init=False)

    def __post_init__(self) -> None:
        self.reproducer = ReproductionRunner(self.go)

    def run(self, request: FuzzRunRequest) -> FuzzRunOutcome:
        fuzz_result = self.go.fuzz(request)
        if fuzz_result.success:
            logger.info("No fuzzing error")
            return NoFailure()

        logger.info("Fuzzing error occurred (exit status %s)", fuzz_result.returncode)

        # Leave neither staged changes nor the corpus file behind, whatever happens below,
        # so the next run starts from a clean diff.
        with contextlib.ExitStack() as cleanup:
            cleanup.callback(self.git.restore_staged)

            detection = ArtifactDetector(self.git).detect()
            if detection.artifact is None:
                logger.info("No new corpus found (%s)", detection.status.value)
                return NoNewArtifact(detection.status)

            artifact = detection.artifact
            cleanup.callback(_remove_file, self.git.toplevel() / artifact.path)

            report = self.build_report(request, artifact)
            return NewArtifact(report, self.dispatcher.dispatch(report))

    def build_report(self, request: FuzzRunRequest, artifact: Artifact) -> Report:
        package_name = self.go.package_name(request.package)
        base_commit = self.git.head_commit()
        reproduction = self.reproducer.reproduce(artifact, request.package)
        return Report(
            package=request.package,
            package_name=package_name,
            artifact=artifact,
            reproduction=reproduction,
            base_commit=base_commit,
        )
