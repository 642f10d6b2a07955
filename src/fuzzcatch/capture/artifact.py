"""Locate the corpus file a failing fuzz run left in the working tree.

The Go fuzz engine writes a failing input to
``<package>/testdata/fuzz/<FuzzName>/<case id>``. After a failing run the
index is compared against HEAD and exactly one such file must show up;
anything else is not reportable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable
import logging

from fuzzcatch.capture.go_tool import FUZZ_PREFIX
from fuzzcatch.capture.git import GitRepo

logger = logging.getLogger(__name__)


class DetectionStatus(str, Enum):
    FOUND = "found"
    NO_CHANGES = "no-changes"
    NO_CORPUS = "no-corpus"
    AMBIGUOUS = "ambiguous"


def is_corpus_path(path: str) -> bool:
    segments = path.split("/")
    return (
        len(segments) >= 4
        and segments[-4] == "testdata"
        and segments[-3] == "fuzz"
        and segments[-2].startswith(FUZZ_PREFIX)
    )


def find_corpus_paths(paths: Iterable[str]) -> list[str]:
    return [path for path in paths if is_corpus_path(path)]


@dataclass(frozen=True)
class Artifact:
    path: str
    contents: bytes = field(repr=False)
    patch: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not is_corpus_path(self.path):
            raise ValueError(f"not a fuzz corpus path: {self.path}")

    @property
    def entry_point(self) -> str:
        return self.path.split("/")[-2]

    @property
    def case_id(self) -> str:
        return self.path.split("/")[-1]


@dataclass(frozen=True)
class Detection:
    status: DetectionStatus
    artifact: Artifact | None = None


@dataclass
class ArtifactDetector:
    git: GitRepo

    def detect(self) -> Detection:
        """Stage the working tree and look for a single new corpus file."""
        self.git.stage_all()
        if not self.git.has_staged_changes():
            logger.info("No changes in the working tree")
            return Detection(DetectionStatus.NO_CHANGES)

        candidates = find_corpus_paths(self.git.staged_paths())
        if not candidates:
            logger.info("No new corpus file among the changed files")
            return Detection(DetectionStatus.NO_CORPUS)
        if len(candidates) > 1:
            logger.warning("Found %d new corpus files, cannot tell which one failed: %s", len(candidates), candidates)
            return Detection(DetectionStatus.AMBIGUOUS)

        path = candidates[0]
        contents = (self.git.toplevel() / path).read_bytes()
        artifact = Artifact(path=path, contents=contents, patch=self.git.staged_patch(path))
        logger.info("New corpus found: %s", path)
        return Detection(DetectionStatus.FOUND, artifact)
