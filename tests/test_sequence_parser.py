import io

import pytest

from byte_tokenizer import ByteTokenizer
from data_structures import SequenceRecord
from sequence_parser import SequenceReader, iter_records
from sequence_writer import format_record, write_record

BUFFER_SIZES = [1, 2, 7, 64 * 1024]


def parse(data: bytes, buffer_size: int = 64 * 1024):
    return list(iter_records(io.BytesIO(data), buffer_size))


@pytest.mark.parametrize("buffer_size", BUFFER_SIZES)
def test_multiline_fasta(buffer_size):
    data = b"junk before\n>seq1 desc text\nACGT\nAC\n>seq2\nGG\n"
    assert parse(data, buffer_size) == [
        SequenceRecord("seq1", "desc text", b"ACGTAC", b""),
        SequenceRecord("seq2", "", b"GG", b""),
    ]


@pytest.mark.parametrize("buffer_size", BUFFER_SIZES)
def test_multiline_fastq(buffer_size):
    data = b"@r1\nACGT\nAC\n+r1\nIIII\nII\n@r2 c\nGG\n+\n@@\n"
    records = parse(data, buffer_size)
    assert records == [
        SequenceRecord("r1", "", b"ACGTAC", b"IIIIII"),
        SequenceRecord("r2", "c", b"GG", b"@@"),
    ]
    assert all(r.is_fastq for r in records)


def test_mixed_fasta_and_fastq():
    records = parse(b">a\nAC\n@b\nGT\n+\nII\n>c\nTT\n")
    assert [(r.name, r.sequence, r.quality) for r in records] == [
        ("a", b"AC", b""),
        ("b", b"GT", b"II"),
        ("c", b"TT", b""),
    ]


def test_truncated_quality_is_kept():
    records = parse(b"@r1\nACGT\n+\nII")
    assert records == [SequenceRecord("r1", "", b"ACGT", b"II")]


def test_separator_at_end_of_stream():
    records = parse(b"@r1\nACGT\n+")
    assert records == [SequenceRecord("r1", "", b"ACGT", b"")]


def test_crlf_and_blank_lines():
    records = parse(b">s1 d\r\nAC\r\n\r\nGT\r\n\n>s2\r\nA\r\n")
    assert records == [
        SequenceRecord("s1", "d", b"ACGT", b""),
        SequenceRecord("s2", "", b"A", b""),
    ]


def test_comment_keeps_inner_whitespace():
    records = parse(b">chr1 len=10\tsource=x y\nA\n")
    assert records[0].comment == "len=10\tsource=x y"


@pytest.mark.parametrize("data", [b"", b"no header here\n", b">"])
def test_no_records(data):
    assert parse(data) == []


def test_header_without_body():
    assert parse(b">s1") == [SequenceRecord("s1", "", b"", b"")]


def test_reader_returns_none_after_exhaustion():
    reader = SequenceReader(ByteTokenizer(io.BytesIO(b">a\nA\n")))
    assert reader.read_record().name == "a"
    assert reader.read_record() is None
    assert reader.read_record() is None
    assert reader.records_read == 1


@pytest.mark.parametrize("line_len", [0, 1, 3, 60])
def test_fasta_round_trip(line_len):
    records = [
        SequenceRecord("chr1", "some comment", b"ACGTNNRYacgt" * 7),
        SequenceRecord("chr2", "", b"A"),
        SequenceRecord("chrM", "x", b"GATTACA"),
    ]
    data = b"".join(format_record(r, line_len) for r in records)
    assert parse(data, 5) == records


@pytest.mark.parametrize("line_len", [0, 4, 60])
def test_fastq_quality_matches_sequence_length(line_len):
    records = [
        SequenceRecord("read/1", "", b"ACGTACGTAC", b"@@III+++#5"),
        SequenceRecord("read/2", "bc=ACGT", b"GGCC", b"+@+@"),
    ]
    data = b"".join(format_record(r, line_len) for r in records)
    parsed = parse(data, 3)
    assert parsed == records
    assert all(len(r.quality) == len(r.sequence) for r in parsed)


def test_write_record_to_binary_handle():
    out = io.BytesIO()
    write_record(SequenceRecord("r1", "", b"ACGTA", b"IIII#"), out, line_len=3)
    write_record(SequenceRecord("c1", "desc", b"GG"), out)
    assert out.getvalue() == b"@r1\nACG\nTA\n+\nIII\nI#\n>c1 desc\nGG\n"
