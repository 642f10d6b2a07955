"""Tests for the fuzz, detect, reproduce and report pipeline."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from fuzzcatch.capture.artifact import DetectionStatus
from fuzzcatch.capture.git import GitRepo
from fuzzcatch.capture.go_tool import GoTool
from fuzzcatch.capture.orchestrator import FuzzOrchestrator, NewArtifact, NoFailure, NoNewArtifact
from fuzzcatch.common.command import CommandResult
from fuzzcatch.common.types import FuzzRunRequest
from fuzzcatch.reporting.dispatcher import ReportDispatcher
from fuzzcatch.reporting.graphql import RemoteMutationError
from fuzzcatch.reporting.models import PublishResult

from conftest import CORPUS_CONTENTS, CORPUS_PATH

REQUEST = FuzzRunRequest(package="./example/fuzz", fuzz_regexp="FuzzReverse", fuzz_time="1s", fuzz_minimize_time="1s")


@pytest.fixture
def go() -> Mock:
    go = Mock(spec=GoTool)
    go.fuzz.return_value = CommandResult(success=False, returncode=1, output=b"--- FAIL: FuzzReverse\n")
    go.run_test.return_value = CommandResult(success=False, returncode=1, output=b"--- FAIL: FuzzReverse\nFAIL\n")
    go.package_name.return_value = "example/fuzz"
    return go


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    corpus = tmp_path / CORPUS_PATH
    corpus.parent.mkdir(parents=True)
    corpus.write_bytes(CORPUS_CONTENTS)
    return tmp_path


@pytest.fixture
def git(repo_root: Path) -> Mock:
    git = Mock(spec=GitRepo)
    git.has_staged_changes.return_value = True
    git.staged_paths.return_value = [CORPUS_PATH]
    git.staged_patch.return_value = "patch"
    git.toplevel.return_value = repo_root
    git.head_commit.return_value = "0123456789abcdef0123456789abcdef01234567"
    return git


@pytest.fixture
def dispatcher() -> Mock:
    dispatcher = Mock(spec=ReportDispatcher)
    dispatcher.dispatch.return_value = PublishResult(
        found=True, head_branch="fuzzcatch/example/fuzz/FuzzReverse/abcdef"
    )
    return dispatcher


def test_no_failure_touches_nothing(go, git, dispatcher):
    go.fuzz.return_value = CommandResult(success=True, returncode=0, output=b"ok\n")

    outcome = FuzzOrchestrator(go, git, dispatcher).run(REQUEST)

    assert outcome == NoFailure()
    assert outcome.result() == PublishResult(found=False)
    go.fuzz.assert_called_once_with(REQUEST)
    assert git.method_calls == []
    dispatcher.dispatch.assert_not_called()


def test_failure_without_corpus(go, git, dispatcher):
    git.staged_paths.return_value = ["go.sum"]

    outcome = FuzzOrchestrator(go, git, dispatcher).run(REQUEST)

    assert outcome == NoNewArtifact(DetectionStatus.NO_CORPUS)
    assert not outcome.result().found
    git.restore_staged.assert_called_once()
    go.run_test.assert_not_called()
    dispatcher.dispatch.assert_not_called()


def test_failure_without_changes(go, git, dispatcher):
    git.has_staged_changes.return_value = False

    outcome = FuzzOrchestrator(go, git, dispatcher).run(REQUEST)

    assert outcome == NoNewArtifact(DetectionStatus.NO_CHANGES)
    git.restore_staged.assert_called_once()


def test_new_artifact_is_reported(go, git, dispatcher, repo_root):
    outcome = FuzzOrchestrator(go, git, dispatcher).run(REQUEST)

    assert isinstance(outcome, NewArtifact)
    assert outcome.result() == dispatcher.dispatch.return_value

    report = dispatcher.dispatch.call_args.args[0]
    assert report.package == "./example/fuzz"
    assert report.package_name == "example/fuzz"
    assert report.base_commit == "0123456789abcdef0123456789abcdef01234567"
    assert report.artifact.contents == CORPUS_CONTENTS
    assert report.reproduction.command == "go test -run=FuzzReverse/abcdef ./example/fuzz"
    assert report.reproduction.output == "--- FAIL: FuzzReverse\nFAIL\n"
    go.run_test.assert_called_once_with("FuzzReverse/abcdef", "./example/fuzz")

    git.restore_staged.assert_called_once()
    assert not (repo_root / CORPUS_PATH).exists()


def test_cleanup_runs_when_reporting_fails(go, git, dispatcher, repo_root):
    dispatcher.dispatch.side_effect = RemoteMutationError("failed to create a branch")

    with pytest.raises(RemoteMutationError):
        FuzzOrchestrator(go, git, dispatcher).run(REQUEST)

    git.restore_staged.assert_called_once()
    assert not (repo_root / CORPUS_PATH).exists()


def test_suppressed_report(go, git, dispatcher):
    dispatcher.dispatch.return_value = PublishResult(found=False)

    outcome = FuzzOrchestrator(go, git, dispatcher).run(REQUEST)

    assert isinstance(outcome, NewArtifact)
    assert not outcome.result().found
