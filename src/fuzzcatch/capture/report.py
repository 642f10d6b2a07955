from __future__ import annotations

from dataclasses import dataclass

from fuzzcatch.capture.artifact import Artifact
from fuzzcatch.capture.reproduce import Reproduction

ATTRIBUTION = "fuzzcatch"


@dataclass(frozen=True)
class Report:
    """Everything needed to publish one reproduced fuzz failure."""

    package: str
    package_name: str
    artifact: Artifact
    reproduction: Reproduction
    base_commit: str

    @property
    def entry_point(self) -> str:
        return self.artifact.entry_point

    @property
    def title(self) -> str:
        return f"{self.entry_point} in the package {self.package_name} failed"

    def branch_name(self, prefix: str) -> str:
        return f"{prefix}/{self.package_name}/{self.entry_point}/{self.artifact.case_id}"

    def failure_summary(self) -> str:
        output = self.reproduction.output.rstrip("\n")
        return f"`{self.reproduction.command}` failed with the following output:\n\n```\n{output}\n```\n"

    @property
    def commit_headline(self) -> str:
        return f"Add a new fuzz input data for {self.entry_point} in {self.package_name}."

    @property
    def commit_body(self) -> str:
        return f"{self.failure_summary()}\nThis fuzz data is generated by {ATTRIBUTION}.\n"

    def _body(self, kind: str, log_url: str | None) -> str:
        body = f"{self.failure_summary()}\n---\n\nThis {kind} is generated by {ATTRIBUTION}.\n"
        if log_url:
            body += f"\n[See the log]({log_url}).\n"
        return body

    def pull_request_body(self, log_url: str | None = None) -> str:
        return self._body("pull request", log_url)

    def advisory_description(self, log_url: str | None = None) -> str:
        return self._body("report", log_url)
