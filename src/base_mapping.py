import numpy as np

# 4-bit nucleotide codes, one bit per base (A=1, C=2, G=4, T=8)
NT16_ALPHABET = "XACMGRSVTWYHKDBN"

NT16_C = 2
NT16_G = 4
NT16_R = 5   # A or G
NT16_Y = 10  # C or T


def _freeze(table: np.ndarray) -> np.ndarray:
    table.flags.writeable = False
    return table


def create_nt16_table():
    """
    Create lookup table mapping ASCII bytes to 4-bit nucleotide codes.
    Unknown characters (and N) map to 15; case is ignored.
    Returns: np.ndarray of shape (256,) with uint8 codes
    """
    table = np.full(256, 15, dtype=np.uint8)
    for code, char in enumerate(NT16_ALPHABET):
        table[ord(char)] = code
        table[ord(char.lower())] = code
    return _freeze(table)


def create_base_class_table():
    """
    Create lookup table mapping ASCII bytes to base classes A=0, C=1, G=2, T=3, other=4.
    Returns: np.ndarray of shape (256,) with uint8 values
    """
    table = np.full(256, 4, dtype=np.uint8)
    for idx, char in enumerate("ACGT"):
        table[ord(char)] = idx
        table[ord(char.lower())] = idx
    return _freeze(table)


def create_upper_mask():
    """Lookup table flagging upper-case ASCII letters"""
    table = np.zeros(256, dtype=np.bool_)
    table[ord("A"):ord("Z") + 1] = True
    return _freeze(table)


NT16_TABLE = create_nt16_table()
BASE_CLASS_TABLE = create_base_class_table()
UPPER_MASK = create_upper_mask()

# Number of bases a 4-bit code stands for; code 0 is treated like N
BITCOUNT_TABLE = _freeze(np.array([4, 1, 1, 2, 1, 2, 2, 3, 1, 2, 2, 3, 2, 3, 3, 4], dtype=np.uint8))

# 4-bit code to A/C/G/T index, 4 for anything ambiguous
NT16_TO_4_TABLE = _freeze(np.array([4, 0, 1, 4, 2, 4, 4, 4, 3, 4, 4, 4, 4, 4, 4, 4], dtype=np.uint8))
