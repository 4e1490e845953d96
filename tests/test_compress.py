import logging

import pytest

from compress import build_parser, configure_logging, main, parse_mode


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize("value, expected", [
    ("e", "encode"),
    ("E", "encode"),
    ("encode", "encode"),
    ("d", "decode"),
    ("Decode", "decode"),
])
def test_parse_mode(value, expected):
    assert parse_mode(value) == expected


def test_bad_mode_is_usage_error(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["x", str(tmp_path / "a"), str(tmp_path / "b")])
    assert excinfo.value.code == 2


def test_parser_requires_three_arguments():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["e", "only-input"])


def test_encode_then_decode(tmp_path, capsys):
    src = tmp_path / "notes.txt"
    packed = tmp_path / "notes.txt.huff"
    out = tmp_path / "notes.out"
    data = b"so much depends upon a red wheel barrow\n" * 40
    src.write_bytes(data)

    assert main(["e", str(src), str(packed)]) == 0
    printed = capsys.readouterr().out
    assert printed.startswith("Reduced file size by ")
    reduction = float(printed.split("by ")[1].rstrip("%\n"))
    expected = 100 * (1 - packed.stat().st_size / len(data))
    assert reduction == pytest.approx(expected, abs=1e-5)

    assert main(["d", str(packed), str(out)]) == 0
    assert f"Decoded {len(data)} bytes" in capsys.readouterr().out
    assert out.read_bytes() == data


def test_empty_input_reports_kind(tmp_path, capsys):
    src = tmp_path / "empty"
    src.write_bytes(b"")
    assert main(["e", str(src), str(tmp_path / "empty.huff")]) == 1
    assert "empty_input" in capsys.readouterr().err


def test_missing_input_reports_io(tmp_path, capsys):
    assert main(["d", str(tmp_path / "missing.huff"), str(tmp_path / "out")]) == 1
    assert "io:" in capsys.readouterr().err


def test_malformed_artifact(tmp_path, capsys):
    bad = tmp_path / "bad.huff"
    bad.write_bytes(b"\x00\x00")
    assert main(["d", str(bad), str(tmp_path / "out")]) == 1
    assert "malformed_header" in capsys.readouterr().err


def test_log_level_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("HUFFPACK_LOG_LEVEL", "DEBUG")
    src = tmp_path / "in"
    src.write_bytes(b"abc")
    assert main(["e", str(src), str(tmp_path / "in.huff")]) == 0
    assert logging.getLogger().level == logging.DEBUG


def test_verbose_flag_overrides_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("HUFFPACK_LOG_LEVEL", "ERROR")
    src = tmp_path / "in"
    src.write_bytes(b"abc")
    assert main(["e", str(src), str(tmp_path / "in.huff"), "-v"]) == 0
    assert logging.getLogger().level == logging.INFO


def test_configure_logging_replaces_handlers():
    configure_logging("info")
    configure_logging("info")
    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert root.level == logging.INFO


def test_configure_logging_unknown_level_falls_back():
    configure_logging("chatty")
    assert logging.getLogger().level == logging.WARNING
