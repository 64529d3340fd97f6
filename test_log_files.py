"""
Unit tests for log_files.py
Tests log tailing, clearing and trimming
"""
from unittest.mock import patch

from log_files import clear_log_file, read_log_tail, resolve_log_path, trim_log_file


def write_lines(path, count):
    path.write_text("".join(f"line {i}\n" for i in range(1, count + 1)), encoding="utf-8")


class TestResolveLogPath:
    """Tests for resolve_log_path()"""

    def test_relative_path_anchored(self, tmp_path):
        assert resolve_log_path(tmp_path, "./out.log") == (tmp_path / "out.log").resolve()

    def test_absolute_path_kept(self, tmp_path):
        absolute = tmp_path / "abs.log"
        assert resolve_log_path("/elsewhere", absolute) == absolute


class TestReadLogTail:
    """Tests for read_log_tail()"""

    def test_missing_file(self, tmp_path):
        tail = read_log_tail(tmp_path / "nope.log", 100)
        assert tail.missing is True
        assert tail.lines == []
        assert tail.total_lines == 0

    def test_short_file(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 3)
        tail = read_log_tail(path, 100)
        assert tail.lines == ["line 1", "line 2", "line 3"]
        assert tail.total_lines == 3
        assert tail.truncated is False

    def test_truncated_tail(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 150)
        tail = read_log_tail(path, 100)
        assert len(tail.lines) == 100
        assert tail.lines[0] == "line 51"
        assert tail.lines[-1] == "line 150"
        assert tail.total_lines == 150
        assert tail.truncated is True

    def test_crlf_lines(self, tmp_path):
        path = tmp_path / "out.log"
        path.write_bytes(b"a\r\nb\r\n")
        assert read_log_tail(path, 100).lines == ["a", "b"]


class TestClearLogFile:
    """Tests for clear_log_file()"""

    def test_clear_existing(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 5)
        assert clear_log_file(path) is True
        assert path.exists()
        assert path.read_text() == ""

    def test_clear_missing(self, tmp_path):
        assert clear_log_file(tmp_path / "nope.log") is False


class TestTrimLogFile:
    """Tests for trim_log_file()"""

    def test_under_limit_untouched(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 10)
        assert trim_log_file(path, 10, 5) is False
        assert len(path.read_text().splitlines()) == 10

    def test_over_limit_keeps_newest(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 11)
        assert trim_log_file(path, 10, 4) is True
        assert path.read_text() == "line 8\nline 9\nline 10\nline 11\n"

    def test_keep_more_than_present(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 6)
        assert trim_log_file(path, 5, 50) is True
        assert len(path.read_text().splitlines()) == 6

    def test_missing_file(self, tmp_path):
        assert trim_log_file(tmp_path / "nope.log", 10, 5) is False

    def test_failure_is_not_fatal(self, tmp_path):
        path = tmp_path / "out.log"
        write_lines(path, 20)
        with patch("log_files.Path.write_text", side_effect=PermissionError("read-only")), \
                patch("log_files.log") as mock_log:
            assert trim_log_file(path, 10, 5) is False
        mock_log.assert_called_once()
        assert mock_log.call_args[0][:2] == ("WARN", "Log trimming failed (non-fatal)")
