import logging
from typing import BinaryIO, Iterator, Optional

from byte_tokenizer import DEFAULT_BUFFER_SIZE, NEWLINE, ByteTokenizer
from data_structures import EOF, SequenceRecord

logger = logging.getLogger(__name__)

FASTA_MARKER = ord(">")
FASTQ_MARKER = ord("@")
SEPARATOR = ord("+")
CARRIAGE_RETURN = ord("\r")

HEADER_MARKERS = (FASTA_MARKER, FASTQ_MARKER)
BODY_TERMINATORS = (FASTA_MARKER, FASTQ_MARKER, SEPARATOR)


class SequenceReader:
    """
    Pull parser for FASTA and FASTQ records, one record per read_record() call.
    Multi-line sequence and quality blocks are supported. Parsing is permissive:
    text before the first header is ignored and a short quality block is
    returned as-is.
    """

    def __init__(self, tokenizer: ByteTokenizer):
        self.tokenizer = tokenizer
        # Header marker already consumed while reading the previous body
        self._pending_marker: Optional[int] = None
        self.records_read = 0

    def _seek_header(self) -> bool:
        if self._pending_marker is not None:
            self._pending_marker = None
            return True
        while True:
            c = self.tokenizer.next_byte()
            if c == EOF:
                return False
            if c in HEADER_MARKERS:
                return True

    def read_record(self) -> Optional[SequenceRecord]:
        """Returns the next record, or None once the stream is exhausted"""
        tk = self.tokenizer
        if not self._seek_header():
            return None

        name, terminator = tk.next_token()
        if terminator == EOF and not name:
            return None

        comment = b""
        if terminator != NEWLINE and terminator != EOF:
            comment, _ = tk.next_token(NEWLINE)

        # Sequence body: lines up to the next header or '+' separator
        seq_parts = []
        c = tk.next_byte()
        while c != EOF and c not in BODY_TERMINATORS:
            if c != NEWLINE:
                rest, _ = tk.next_token(NEWLINE)
                if c != CARRIAGE_RETURN or rest:
                    seq_parts.append(bytes((c,)))
                    seq_parts.append(rest)
            c = tk.next_byte()

        if c in HEADER_MARKERS:
            self._pending_marker = c

        record = SequenceRecord(
            name=name.decode("utf-8", errors="ignore"),
            comment=comment.decode("utf-8", errors="ignore"),
            sequence=b"".join(seq_parts),
        )
        self.records_read += 1

        if c != SEPARATOR:
            return record

        # FASTQ: skip the rest of the '+' line, then read at least one quality line
        tk.skip_line()
        qual_parts = []
        qual_len = 0
        seq_len = len(record.sequence)
        while True:
            line, terminator = tk.next_token(NEWLINE)
            if terminator == EOF and not line:
                break
            qual_parts.append(line)
            qual_len += len(line)
            if qual_len >= seq_len or terminator == EOF:
                break

        record.quality = b"".join(qual_parts)
        if qual_len != seq_len:
            logger.debug(
                f"Record {record.name}: quality length {qual_len} does not match sequence length {seq_len}"
            )
        return record


def iter_records(source: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE) -> Iterator[SequenceRecord]:
    """
    Lazily yield records from a byte source.
    Each record is fresh; nothing is retained after it is yielded.
    """
    reader = SequenceReader(ByteTokenizer(source, buffer_size))
    while True:
        record = reader.read_record()
        if record is None:
            break
        yield record
    logger.debug(f"Parsed {reader.records_read:,} records")
