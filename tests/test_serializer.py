import struct
import sys

import pytest

from vmasm import AsmError, resolve_byte_order, serialize, write_words


def test_little_endian_default():
    assert serialize([1, -1]) == b"\x01" + b"\x00" * 7 + b"\xff" * 8


def test_big_endian():
    assert serialize([1], "big") == b"\x00" * 7 + b"\x01"


def test_native_follows_host():
    assert resolve_byte_order("native") == sys.byteorder
    assert serialize([5, 6], "native") == struct.pack("=2q", 5, 6)


def test_unknown_byte_order():
    with pytest.raises(AsmError):
        resolve_byte_order("middle")


def test_empty_stream():
    assert serialize([]) == b""


def test_word_out_of_range():
    with pytest.raises(AsmError):
        serialize([2 ** 63])


def test_write_words(tmp_path):
    out = tmp_path / "prog.bin"
    write_words(str(out), [31, 42], "big")
    assert out.read_bytes() == struct.pack(">2q", 31, 42)
    assert not (tmp_path / "prog.bin.tmp").exists()


def test_write_words_replaces_existing_file(tmp_path):
    out = tmp_path / "prog.bin"
    out.write_bytes(b"old contents that are longer")
    write_words(str(out), [0])
    assert out.read_bytes() == b"\x00" * 8


def test_write_words_unwritable_destination(tmp_path):
    out = tmp_path / "missing" / "prog.bin"
    with pytest.raises(AsmError, match="Cannot write output file"):
        write_words(str(out), [0])
