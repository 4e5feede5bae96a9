import gzip
import io

import pytest

from byte_tokenizer import NEWLINE, ByteTokenizer, open_byte_source
from data_structures import EOF


@pytest.mark.parametrize("buffer_size", [1, 3, 64 * 1024])
def test_tokens_with_terminators(buffer_size):
    tk = ByteTokenizer(io.BytesIO(b"chr1 comment here\nACGT"), buffer_size)
    assert tk.next_token() == (b"chr1", ord(" "))
    assert tk.next_token(NEWLINE) == (b"comment here", NEWLINE)
    assert tk.next_token(NEWLINE) == (b"ACGT", EOF)
    assert tk.next_token() == (b"", EOF)


def test_tab_is_whitespace():
    tk = ByteTokenizer(io.BytesIO(b"a\tb\n"))
    assert tk.next_token() == (b"a", ord("\t"))
    assert tk.next_token() == (b"b", NEWLINE)


def test_line_read_drops_carriage_return():
    tk = ByteTokenizer(io.BytesIO(b"abc\r\ndef"), 2)
    assert tk.next_token(NEWLINE) == (b"abc", NEWLINE)
    assert tk.next_token(NEWLINE) == (b"def", EOF)


def test_custom_stop_byte():
    tk = ByteTokenizer(io.BytesIO(b"key=value;rest"))
    assert tk.next_token(ord("=")) == (b"key", ord("="))
    assert tk.next_token(ord(";")) == (b"value", ord(";"))


def test_next_byte_and_skip_line():
    tk = ByteTokenizer(io.BytesIO(b"junk line\nXY"), 4)
    assert tk.skip_line() == NEWLINE
    assert tk.next_byte() == ord("X")
    assert tk.next_byte() == ord("Y")
    assert tk.next_byte() == EOF
    assert tk.skip_line() == EOF


def test_empty_input():
    tk = ByteTokenizer(io.BytesIO(b""))
    assert tk.at_eof
    assert tk.next_token() == (b"", EOF)
    assert tk.next_byte() == EOF


def test_invalid_buffer_size():
    with pytest.raises(ValueError):
        ByteTokenizer(io.BytesIO(b""), 0)


def test_open_plain_and_gzip(write_file):
    data = b">s1\nACGT\n"
    for name in ("plain.fa", "packed.fa.gz"):
        path = write_file(name, data)
        with open_byte_source(path) as source:
            assert source.read() == data


def test_gzip_detected_from_content(tmp_path):
    path = tmp_path / "reads.txt"
    with gzip.open(path, "wb") as fh:
        fh.write(b"@r\nA\n+\nI\n")
    with open_byte_source(str(path)) as source:
        assert source.read() == b"@r\nA\n+\nI\n"


def test_open_missing_file(tmp_path):
    with pytest.raises(OSError):
        with open_byte_source(str(tmp_path / "missing.fa")):
            pass
