import logging
import math
from typing import Iterator, List, TextIO

import numpy as np

from base_mapping import BASE_CLASS_TABLE
from data_structures import NUM_BASE_CLASSES, NUM_QUALITY_BINS, PositionStat, SequenceRecord
from sequence_parser import iter_records

logger = logging.getLogger(__name__)

PHRED_OFFSET = 33
MAX_QUALITY = NUM_QUALITY_BINS - 1
DEFAULT_QTHRES = 20
LOW_CONFIDENCE_MAX = 3      # scores 0..3 are treated as a coin flip
LOW_CONFIDENCE_ERROR = 0.5
EPSILON = 1e-6

BASE_COLUMNS = ("%A", "%C", "%G", "%T", "%N")


def create_phred_quality_map(phred_offset=PHRED_OFFSET, max_quality=MAX_QUALITY):
    """Create mapping from ASCII quality characters to Phred scores in [0, max_quality]"""
    phred_map = np.clip(np.arange(256, dtype=np.int32) - phred_offset, 0, max_quality)
    return phred_map.astype(np.uint8)


def error_probabilities() -> np.ndarray:
    """Per-score error probability 10^(-q/10), fixed to 50% for the lowest scores"""
    perr = np.power(10.0, -0.1 * np.arange(NUM_QUALITY_BINS, dtype=np.float64))
    perr[:LOW_CONFIDENCE_MAX + 1] = LOW_CONFIDENCE_ERROR
    return perr


def _round_up_pow2(n: int) -> int:
    return 1 << (n - 1).bit_length() if n > 1 else 1


class QualityAccumulator:
    """
    Per-position base and quality histograms over every FASTQ record of a file.
    Rows of the histogram matrices are positions; they grow by powers of two.
    """

    def __init__(self, phred_offset: int = PHRED_OFFSET):
        self.phred_map = create_phred_quality_map(phred_offset)
        self.quality = np.zeros((0, NUM_QUALITY_BINS), dtype=np.int64)
        self.bases = np.zeros((0, NUM_BASE_CLASSES), dtype=np.int64)
        self.n_records = 0
        self.total_length = 0
        self.min_length = None
        self.max_length = 0

    def _ensure_capacity(self, length: int):
        capacity = self.quality.shape[0]
        if length <= capacity:
            return
        new_capacity = _round_up_pow2(length)
        grow = new_capacity - capacity
        self.quality = np.vstack([self.quality, np.zeros((grow, NUM_QUALITY_BINS), dtype=np.int64)])
        self.bases = np.vstack([self.bases, np.zeros((grow, NUM_BASE_CLASSES), dtype=np.int64)])
        logger.debug(f"Position buckets grown to {new_capacity:,}")

    def add(self, record: SequenceRecord) -> bool:
        """Count one record. FASTA records (no quality) are ignored; returns whether it was counted."""
        if not record.quality:
            return False

        seq_len = len(record.sequence)
        self.n_records += 1
        self.total_length += seq_len
        self.min_length = seq_len if self.min_length is None else min(self.min_length, seq_len)
        self.max_length = max(self.max_length, seq_len)
        self._ensure_capacity(self.max_length)

        # Positions past the end of the sequence have no base to pair with
        qual_bytes = record.quality[:seq_len]
        n = len(qual_bytes)
        if n == 0:
            return True

        scores = self.phred_map[np.frombuffer(qual_bytes, dtype=np.uint8)]
        classes = BASE_CLASS_TABLE[np.frombuffer(record.sequence[:n], dtype=np.uint8)]
        positions = np.arange(n)
        self.quality[positions, scores] += 1
        self.bases[positions, classes] += 1
        return True

    def positions(self) -> Iterator[PositionStat]:
        for i in range(self.max_length):
            yield PositionStat(quality=self.quality[i], bases=self.bases[i])

    def aggregate(self) -> PositionStat:
        return PositionStat(
            quality=self.quality[:self.max_length].sum(axis=0),
            bases=self.bases[:self.max_length].sum(axis=0),
        )

    @property
    def average_length(self) -> float:
        return self.total_length / self.n_records if self.n_records else 0.0


def _percent(count, total) -> float:
    return 100.0 * count / total if total else 0.0


def summarize(stat: PositionStat, perr: np.ndarray, qthres: int, observed: np.ndarray) -> List[str]:
    """
    Report columns for one bucket: #bases, base %, avgQ, errQ, then either
    %low/%high at qthres, or %Q for every observed score when qthres <= 0.
    """
    total = stat.total
    scores = np.arange(NUM_QUALITY_BINS)

    columns = [str(total)]
    columns += [f"{_percent(b, total):.1f}" for b in stat.bases]

    qsum = int((stat.quality * scores).sum())
    psum = float((stat.quality * perr).sum())
    avg_q = qsum / total if total else 0.0
    err_q = 10.0 * math.log10((total + EPSILON) / (psum + EPSILON))
    columns += [f"{avg_q:.1f}", f"{err_q:.1f}"]

    if qthres <= 0:
        columns += [f"{_percent(stat.quality[k], total):.2f}" for k in np.flatnonzero(observed)]
    else:
        n_low = int(stat.quality[:qthres].sum())
        columns += [f"{_percent(n_low, total):.1f}", f"{_percent(total - n_low, total):.1f}"]
    return columns


def write_report(acc: QualityAccumulator, out: TextIO, qthres: int = DEFAULT_QTHRES):
    perr = error_probabilities()
    all_stat = acc.aggregate()
    observed = all_stat.quality > 0

    out.write(
        f"min_len: {acc.min_length or 0}; max_len: {acc.max_length}; "
        f"avg_len: {acc.average_length:.2f}; {int(observed.sum())} distinct quality values\n"
    )

    header = ["POS", "#bases", *BASE_COLUMNS, "avgQ", "errQ"]
    if qthres <= 0:
        header += [f"%Q{k}" for k in np.flatnonzero(observed)]
    else:
        header += ["%low", "%high"]
    out.write("\t".join(header) + "\n")

    out.write("\t".join(["ALL"] + summarize(all_stat, perr, qthres, observed)) + "\n")
    for pos, stat in enumerate(acc.positions(), start=1):
        out.write("\t".join([str(pos)] + summarize(stat, perr, qthres, observed)) + "\n")
    out.flush()


def run_fqchk(source, out: TextIO, qthres: int = DEFAULT_QTHRES,
              phred_offset: int = PHRED_OFFSET) -> QualityAccumulator:
    """Accumulate every FASTQ record of a byte source and write the QC table to out"""
    acc = QualityAccumulator(phred_offset)
    for record in iter_records(source):
        acc.add(record)
    logger.debug(f"Counted {acc.n_records:,} FASTQ records")
    write_report(acc, out, qthres)
    return acc
