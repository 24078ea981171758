import struct

import pytest

import vmasm


@pytest.fixture
def program(tmp_path):
    def _program(text):
        path = tmp_path / "prog.asm"
        path.write_text(text, encoding="utf-8")
        return path
    return _program


def test_cli_writes_binary(program, tmp_path):
    src = program("PUSH $42\nSHOW R1\nSTOP\n")
    out = tmp_path / "prog.bin"
    assert vmasm.run(["-i", str(src), "-o", str(out)]) == 0
    assert out.read_bytes() == struct.pack("<5q", 1, 42, 13, 0, 31)


def test_cli_big_endian(program, tmp_path):
    src = program("STOP\n")
    out = tmp_path / "prog.bin"
    assert vmasm.run(["-i", str(src), "-o", str(out), "-e", "big"]) == 0
    assert out.read_bytes() == struct.pack(">q", 31)


def test_cli_failure_leaves_no_output(program, tmp_path, caplog):
    src = program("NOP\nADD R99 R1\n")
    out = tmp_path / "prog.bin"
    assert vmasm.run(["-i", str(src), "-o", str(out)]) == 1
    assert not out.exists()
    assert "line 2: invalid register: R99" in caplog.text


def test_cli_failure_keeps_previous_output(program, tmp_path):
    src = program("JMP 5\n")
    out = tmp_path / "prog.bin"
    out.write_bytes(b"previous")
    assert vmasm.run(["-i", str(src), "-o", str(out)]) == 1
    assert out.read_bytes() == b"previous"


def test_cli_missing_input(tmp_path, caplog):
    out = tmp_path / "prog.bin"
    assert vmasm.run(["-i", str(tmp_path / "nope.asm"), "-o", str(out)]) == 1
    assert "not found" in caplog.text
    assert not out.exists()


def test_cli_readable_listing(program, tmp_path):
    src = program("# demo\n!LOOP ADD R1 $1\nJMP LOOP\n")
    out = tmp_path / "prog.bin"
    assert vmasm.run(["-i", str(src), "-o", str(out), "-r", "-f", "dec"]) == 0
    listing = (tmp_path / "prog.bin_readable.txt").read_text(encoding="utf-8").splitlines()
    assert len(listing) == 2
    assert listing[0].startswith("00000 | 3 0 1")
    assert listing[0].endswith("line 2: ADD R1 $1 <- label: LOOP")
    assert listing[1].startswith("00003 | 16 0")


def test_cli_log_file_and_debug(program, tmp_path):
    src = program("!TOPA NOP\nJMP TOPA\n")
    out = tmp_path / "prog.bin"
    assert vmasm.run(["-i", str(src), "-o", str(out), "-d", "-v", "-l"]) == 0
    log = (tmp_path / "prog.bin.log").read_text(encoding="utf-8")
    assert "Assembly complete." in log
    assert "bound to address 0" in log


def test_cli_requires_arguments():
    with pytest.raises(SystemExit):
        vmasm.run([])


def test_format_word():
    assert vmasm.format_word(255, "hex") == "0xff"
    assert vmasm.format_word(-5, "hex") == "-0x5"
    assert vmasm.format_word(5, "bin") == "0b101"
    assert vmasm.format_word(5, "dec") == "5"
