import math
from dataclasses import dataclass, field
from typing import NamedTuple, Union

import numpy as np

# Terminator returned by the tokenizer once the byte source is exhausted
EOF = -1

NUM_QUALITY_BINS = 94  # Phred 0..93
NUM_BASE_CLASSES = 5   # A, C, G, T, other


class Interval(NamedTuple):
    """Half-open, 0-based [begin, end). end may be math.inf for a whole record."""
    begin: int
    end: Union[int, float]


WHOLE_RECORD = Interval(0, math.inf)


@dataclass
class SequenceRecord:
    name: str
    comment: str = ""
    sequence: bytes = b""
    quality: bytes = b""

    @property
    def is_fastq(self) -> bool:
        return len(self.quality) > 0


@dataclass
class PositionStat:
    """
    Base and quality histograms for a single read position (or the aggregate).
    quality[k] counts Phred score k; bases counts A/C/G/T/other.
    """
    quality: np.ndarray = field(default_factory=lambda: np.zeros(NUM_QUALITY_BINS, dtype=np.int64))
    bases: np.ndarray = field(default_factory=lambda: np.zeros(NUM_BASE_CLASSES, dtype=np.int64))

    @property
    def total(self) -> int:
        return int(self.bases.sum())
