import shutil

import pytest

from fuzzcatch.common.command import CommandResult, ToolingError, check_output, run_cmd

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="needs a POSIX shell")


def test_run_cmd_success(tmp_path):
    result = run_cmd(["sh", "-c", "echo hello"], cwd=tmp_path)

    assert result.success
    assert result.returncode == 0
    assert result.text() == "hello\n"


def test_run_cmd_nonzero_exit_is_not_raised(tmp_path):
    result = run_cmd(["sh", "-c", "echo out; echo err >&2; exit 3"], cwd=tmp_path)

    assert not result.success
    assert result.returncode == 3
    # stderr is merged into the captured output
    assert "out" in result.text()
    assert "err" in result.text()


def test_run_cmd_missing_executable():
    with pytest.raises(ToolingError, match="failed to run"):
        run_cmd(["definitely-not-a-real-command-fuzzcatch"])


def test_run_cmd_env(tmp_path):
    result = run_cmd(["sh", "-c", 'echo "$FUZZCATCH_TEST_VAR"'], cwd=tmp_path, env={"FUZZCATCH_TEST_VAR": "value"})

    assert result.text() == "value\n"


def test_check_output_strips(tmp_path):
    assert check_output(["sh", "-c", "printf '  abc \\n'"], cwd=tmp_path) == "abc"


def test_check_output_failure(tmp_path):
    with pytest.raises(ToolingError, match="exited with status 2"):
        check_output(["sh", "-c", "echo broken; exit 2"], cwd=tmp_path)


def test_command_result_text_handles_invalid_utf8():
    assert CommandResult(success=False, output=b"\xff ok").text() == "� ok"
    assert CommandResult(success=True).text() == ""
