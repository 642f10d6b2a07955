from pathlib import Path
import shutil
import subprocess

import pytest

from fuzzcatch.capture.artifact import Artifact
from fuzzcatch.capture.report import Report
from fuzzcatch.capture.reproduce import Reproduction
from fuzzcatch.common.types import RunContext

TESTDATA_DIR = Path(__file__).parent / "testdata"

CORPUS_PATH = "example/fuzz/testdata/fuzz/FuzzReverse/abcdef"
CORPUS_CONTENTS = b'go test fuzz v1\nstring("\\xc0")\n'


def pytest_addoption(parser):
    parser.addoption(
        "--runintegration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runintegration"):
        # --runintegration given in cli: do not skip integration tests
        return
    skip_integration = pytest.mark.skip(reason="need --runintegration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def _git(cwd: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """An initialized git repository with one commit."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "config", "user.email", "fuzz@example.com")
    _git(repo, "config", "user.name", "fuzz")
    (repo / "example" / "fuzz").mkdir(parents=True)
    (repo / "example" / "fuzz" / "reverse.go").write_text("package fuzz\n")
    _git(repo, "add", ".")
    _git(repo, "commit", "-q", "-m", "initial commit")
    return repo


@pytest.fixture
def artifact() -> Artifact:
    return Artifact(
        path=CORPUS_PATH,
        contents=CORPUS_CONTENTS,
        patch=f"diff --git a/{CORPUS_PATH} b/{CORPUS_PATH}\nnew file mode 100644\n",
    )


@pytest.fixture
def report(artifact: Artifact) -> Report:
    return Report(
        package="./example/fuzz",
        package_name="example/fuzz",
        artifact=artifact,
        reproduction=Reproduction(
            command="go test -run=FuzzReverse/abcdef ./example/fuzz",
            output=(
                "--- FAIL: FuzzReverse (0.00s)\n"
                "    reverse_test.go:20: Reverse produced invalid UTF-8 string\n"
                "FAIL\n"
            ),
            returncode=1,
        ),
        base_commit="0123456789abcdef0123456789abcdef01234567",
    )


@pytest.fixture
def run_context() -> RunContext:
    return RunContext(
        repository="octo/example",
        token="test-token",
        graphql_url="https://api.test/graphql",
        api_url="https://api.test",
        server_url="https://github.test",
        run_id="42",
        run_attempt="1",
        runner_os="Linux",
    )
