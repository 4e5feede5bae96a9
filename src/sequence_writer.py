from typing import BinaryIO

from data_structures import SequenceRecord


def _wrap(data: bytes, line_len: int) -> bytes:
    if line_len <= 0 or len(data) <= line_len:
        return data + b"\n"
    lines = [data[i:i + line_len] for i in range(0, len(data), line_len)]
    return b"\n".join(lines) + b"\n"


def format_record(record: SequenceRecord, line_len: int = 0) -> bytes:
    """
    Serialize a record as FASTA, or FASTQ when it carries a quality string.
    Sequence and quality are wrapped at line_len characters (0 = single line).
    """
    header = record.name
    if record.comment:
        header += " " + record.comment
    marker = b"@" if record.is_fastq else b">"

    out = marker + header.encode("utf-8") + b"\n" + _wrap(record.sequence, line_len)
    if record.is_fastq:
        out += b"+\n" + _wrap(record.quality, line_len)
    return out


def write_record(record: SequenceRecord, outfile: BinaryIO, line_len: int = 0):
    outfile.write(format_record(record, line_len))
