import logging
import re
from typing import BinaryIO, Dict, List, Optional, Tuple

from byte_tokenizer import NEWLINE, ByteTokenizer, open_byte_source
from data_structures import EOF, WHOLE_RECORD, Interval

logger = logging.getLogger(__name__)

RegionIndex = Dict[str, List[Interval]]

LEADING_DIGITS = re.compile(rb"\d+")


def _parse_position(field: bytes) -> Optional[int]:
    """atoi-style parse: a field counts as numeric only if it starts with a digit"""
    match = LEADING_DIGITS.match(field)
    if match is None:
        return None
    return int(match.group())


def parse_region_line(line: bytes) -> Optional[Tuple[str, Interval]]:
    """
    Parse one 'name [begin [end]]' line.
    One number is a 1-based position, two numbers are a 0-based half-open range.
    Unparsable numbers fall back to the whole record. Returns None for blank lines.
    """
    fields = line.split()
    if not fields:
        return None

    name = fields[0].decode("utf-8", errors="ignore")
    beg, end = -1, -1

    if len(fields) > 1:
        value = _parse_position(fields[1])
        if value is not None:
            beg = value
            if len(fields) > 2:
                value = _parse_position(fields[2])
                if value is not None:
                    end = value
                    if end < 0:
                        end = -1

    if end < 0 and beg > 0:  # single position column
        beg, end = beg - 1, beg
    if beg < 0:
        return name, WHOLE_RECORD
    return name, Interval(beg, end)


def read_regions(source: BinaryIO) -> RegionIndex:
    """Build the name -> intervals mapping from an open byte source"""
    regions: RegionIndex = {}
    tokenizer = ByteTokenizer(source)
    n_lines = 0

    while True:
        line, terminator = tokenizer.next_token(NEWLINE)
        if terminator == EOF and not line:
            break
        parsed = parse_region_line(line)
        if parsed is not None:
            name, interval = parsed
            regions.setdefault(name, []).append(interval)
            n_lines += 1
        if terminator == EOF:
            break

    logger.debug(f"Loaded {n_lines:,} intervals for {len(regions):,} sequences")
    return regions


def load_regions(path: str) -> Optional[RegionIndex]:
    """
    Load a region list from a plain or gzipped file ('-' for stdin).
    Returns None if the file cannot be opened.
    """
    try:
        with open_byte_source(path) as source:
            return read_regions(source)
    except (FileNotFoundError, IsADirectoryError, PermissionError) as e:
        logger.warning(f"Cannot open region file {path}: {e}")
        return None
