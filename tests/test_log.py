import re
from unittest import mock

import pytest

from wink.log import error, info, log_to_file


def test_info_writes_line_to_stdout(capsys):
    info("hello there")
    captured = capsys.readouterr()
    assert captured.out == "hello there\n"
    assert captured.err == ""


def test_error_writes_prefixed_line_to_stderr(capsys):
    error("broken pipe")
    captured = capsys.readouterr()
    assert captured.err == "Error: broken pipe\n"
    assert captured.out == ""


def test_log_to_file_creates_directory_and_redirects(tmp_path):
    directory = tmp_path / "logs"
    with mock.patch("os.dup2") as dup2:
        path = log_to_file(directory, "server")
    assert directory.is_dir()
    assert path.parent == directory
    assert path.exists()
    assert re.fullmatch(r"\d{14}server\.log", path.name)
    assert [call.args[1] for call in dup2.call_args_list] == [1, 2]


def test_log_to_file_reuses_existing_directory(tmp_path):
    with mock.patch("os.dup2"):
        path = log_to_file(tmp_path, "machine")
    assert path.parent == tmp_path
    assert path.name.endswith("machine.log")


def test_log_to_file_missing_parent_raises(tmp_path, capsys):
    directory = tmp_path / "missing" / "logs"
    with mock.patch("os.dup2") as dup2:
        with pytest.raises(FileNotFoundError):
            log_to_file(directory, "server")
    assert dup2.call_count == 0
    assert "Error: Failed to make log directory" in capsys.readouterr().err


def test_log_to_file_redirect_failure_raises(tmp_path, capsys):
    with mock.patch("os.dup2", side_effect=OSError("denied")):
        with pytest.raises(OSError):
            log_to_file(tmp_path, "server")
    assert "Error: Failed to redirect" in capsys.readouterr().err