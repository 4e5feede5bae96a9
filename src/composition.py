import logging
import math
from typing import Iterable, Iterator, Optional, TextIO, Tuple

import numpy as np
from numba import njit

from base_mapping import (BITCOUNT_TABLE, NT16_C, NT16_G, NT16_R, NT16_TABLE,
                          NT16_TO_4_TABLE, NT16_Y, UPPER_MASK)
from data_structures import Interval, SequenceRecord
from region_index import RegionIndex
from sequence_parser import iter_records

logger = logging.getLogger(__name__)

COUNTER_NAMES = ("#A", "#C", "#G", "#T", "#2", "#3", "#4", "#CpG", "#tv", "#ts", "#CpG-ts")
NUM_COUNTERS = len(COUNTER_NAMES)

# Counter slots
CNT_TRANSVERSION = 8
CNT_TRANSITION = 9
CNT_CPG = 7
CNT_CPG_TRANSITION = 10


@njit
def _count_codes(codes, upper, begin, end, upper_only, both_strands, bitcnt, nt16to4):
    """
    Tally composition counters over codes[begin:end].

    WARNING: This function is JIT-compiled with @njit. Do not use Python objects,
    lists, dicts, or advanced numpy operations. Only basic numpy arrays and operations are supported.

    Returns: np.ndarray of 11 int64 counters
    """
    counts = np.zeros(11, dtype=np.int64)
    n = codes.shape[0]
    prev = -1
    if begin > 0:
        prev = codes[begin - 1]

    for i in range(begin, end):
        b = codes[i]
        c = bitcnt[b]
        nxt = 15
        if i + 1 < n:
            nxt = codes[i + 1]

        is_cpg = False
        if b == NT16_C or b == NT16_Y:
            if nxt == NT16_G or nxt == NT16_R:
                is_cpg = True
        elif both_strands and (b == NT16_G or b == NT16_R):
            if prev == NT16_C or prev == NT16_Y:
                is_cpg = True

        if not upper_only or upper[i]:
            if c > 1:
                counts[c + 2] += 1
            if c == 1:
                counts[nt16to4[b]] += 1
            if b == NT16_Y or b == NT16_R:
                counts[CNT_TRANSITION] += 1
            elif c == 2:
                counts[CNT_TRANSVERSION] += 1
            if is_cpg:
                counts[CNT_CPG] += 1
                if b == NT16_Y or b == NT16_R:
                    counts[CNT_CPG_TRANSITION] += 1
        prev = b

    return counts


def clip_interval(interval: Interval, length: int) -> Optional[Tuple[int, int]]:
    """Clip [begin, end) to [0, length). Returns None when nothing is left."""
    begin = max(0, interval.begin)
    end = int(min(interval.end, length))
    if begin >= end:
        return None
    return begin, end


def count_interval(sequence: bytes, begin: int, end, upper_only: bool = False,
                   both_strands: bool = False) -> np.ndarray:
    """
    Composition counters for sequence[begin:end], clipped to the sequence.
    Bases just outside the interval are still used as CpG context.
    """
    raw = np.frombuffer(sequence, dtype=np.uint8)
    clipped = clip_interval(Interval(begin, end), len(raw))
    if clipped is None:
        return np.zeros(NUM_COUNTERS, dtype=np.int64)
    return _count_codes(NT16_TABLE[raw], UPPER_MASK[raw], clipped[0], clipped[1],
                        upper_only, both_strands, BITCOUNT_TABLE, NT16_TO_4_TABLE)


def record_rows(record: SequenceRecord, regions: Optional[RegionIndex] = None,
                upper_only: bool = False, both_strands: bool = False) -> Iterator[Tuple]:
    """
    Rows for one record.
    With a region index: (name, begin, end, counters) with the coordinates as listed,
    an unbounded end printed as the sequence length. Region intervals that are empty
    once clipped to the sequence are skipped; records absent from the index yield nothing.
    Without: exactly one (name, length, counters) row, even for an empty sequence.
    """
    raw = np.frombuffer(record.sequence, dtype=np.uint8)
    codes = NT16_TABLE[raw]
    upper = UPPER_MASK[raw]
    length = len(raw)

    if regions is None:
        counts = _count_codes(codes, upper, 0, length, upper_only, both_strands,
                              BITCOUNT_TABLE, NT16_TO_4_TABLE)
        yield record.name, length, counts
        return

    for interval in regions.get(record.name, ()):
        clipped = clip_interval(interval, length)
        if clipped is None:
            continue
        counts = _count_codes(codes, upper, clipped[0], clipped[1], upper_only, both_strands,
                              BITCOUNT_TABLE, NT16_TO_4_TABLE)
        end = length if interval.end == math.inf else interval.end
        yield record.name, interval.begin, end, counts


def composition_rows(records: Iterable[SequenceRecord], regions: Optional[RegionIndex] = None,
                     upper_only: bool = False, both_strands: bool = False) -> Iterator[Tuple]:
    for record in records:
        yield from record_rows(record, regions, upper_only, both_strands)


def format_row(row: Tuple) -> str:
    *fields, counts = row
    return "\t".join([str(f) for f in fields] + [str(int(v)) for v in counts])


def run_comp(source, out: TextIO, regions: Optional[RegionIndex] = None,
             upper_only: bool = False, both_strands: bool = False) -> int:
    """
    Stream records from a byte source and write composition rows to out.
    Output is flushed after every record. Returns the number of rows written.
    """
    n_rows = 0
    for record in iter_records(source):
        for row in record_rows(record, regions, upper_only, both_strands):
            out.write(format_row(row) + "\n")
            n_rows += 1
        out.flush()
    logger.debug(f"Wrote {n_rows:,} composition rows")
    return n_rows
