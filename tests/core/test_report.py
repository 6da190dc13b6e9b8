from pathlib import Path

from clustertest.core.report import extract_report, slice_report


def _write(path: Path, content: bytes) -> Path:
    path.write_bytes(content)
    return path


def test_extracts_enclosed_lines(tmp_path):
    session = _write(
        tmp_path / "session.log",
        b'a\n====json-report-begin===\n{"x":1}\n====json-report-end===\nb\n',
    )
    report = tmp_path / "report.json"
    assert extract_report(session, report) is True
    assert report.read_bytes() == b'{"x":1}\n'


def test_missing_begin_writes_empty_file(tmp_path):
    session = _write(tmp_path / "session.log", b"a\nb\n====json-report-end===\n")
    report = tmp_path / "report.json"
    assert extract_report(session, report) is False
    assert report.exists()
    assert report.read_bytes() == b""


def test_unterminated_report_writes_empty_file(tmp_path):
    session = _write(tmp_path / "session.log", b"====json-report-begin===\n{\"x\":1}\n")
    report = tmp_path / "report.json"
    assert extract_report(session, report) is False
    assert report.read_bytes() == b""


def test_end_before_begin_is_not_a_report():
    assert slice_report(b"====json-report-end===\nx\n====json-report-begin===\n") is None


def test_overwrites_existing_report(tmp_path):
    session = _write(tmp_path / "session.log", b"====json-report-begin===\n[]\n====json-report-end===\n")
    report = _write(tmp_path / "report.json", b"stale content that is longer\n")
    extract_report(session, report)
    assert report.read_bytes() == b"[]\n"


def test_pty_line_endings_are_kept_verbatim():
    captured = b"log\r\n====json-report-begin===\r\n{\r\n}\r\n====json-report-end===\r\n"
    assert slice_report(captured) == b"{\r\n}\r\n"


def test_first_report_wins():
    captured = (
        b"====json-report-begin===\n1\n====json-report-end===\n"
        b"====json-report-begin===\n2\n====json-report-end===\n"
    )
    assert slice_report(captured) == b"1\n"


def test_empty_report_is_found():
    assert slice_report(b"====json-report-begin===\n====json-report-end===\n") == b""


def test_creates_report_directory(tmp_path):
    session = _write(tmp_path / "session.log", b"====json-report-begin===\n{}\n====json-report-end===\n")
    report = tmp_path / "nested" / "dir" / "report.json"
    assert extract_report(session, report) is True
    assert report.read_bytes() == b"{}\n"
