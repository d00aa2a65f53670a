"""Bit scanning, alignment and size-class mapping for the TLSF allocator.

The allocator models a 64-bit target: sizes and addresses are aligned to
8 bytes and the largest block spans ``1 << 32`` bytes.
"""

from __future__ import annotations

# log2 of the number of linear subdivisions of each first-level class.
SL_INDEX_COUNT_LOG2 = 5

# All allocation sizes and addresses are aligned to 8 bytes.
ALIGN_SIZE_LOG2 = 3
ALIGN_SIZE = 1 << ALIGN_SIZE_LOG2

FL_INDEX_MAX = 32
SL_INDEX_COUNT = 1 << SL_INDEX_COUNT_LOG2
FL_INDEX_SHIFT = SL_INDEX_COUNT_LOG2 + ALIGN_SIZE_LOG2
FL_INDEX_COUNT = FL_INDEX_MAX - FL_INDEX_SHIFT + 1

SMALL_BLOCK_SIZE = 1 << FL_INDEX_SHIFT

# Block header layout on a 64-bit target: prev_phys_block, size,
# next_free, prev_free, each eight bytes wide.
POINTER_SIZE = 8
BLOCK_HEADER_SIZE = 4 * POINTER_SIZE

# Only the size field is overhead for a used block.
BLOCK_HEADER_OVERHEAD = POINTER_SIZE

# User data starts directly after the size field.
BLOCK_START_OFFSET = 2 * POINTER_SIZE

BLOCK_SIZE_MIN = BLOCK_HEADER_SIZE - POINTER_SIZE
BLOCK_SIZE_MAX = 1 << FL_INDEX_MAX

_WORD_MASK = 0xFFFFFFFF
_SIZE_MASK = 0xFFFFFFFFFFFFFFFF

if ALIGN_SIZE != SMALL_BLOCK_SIZE // SL_INDEX_COUNT:
    raise RuntimeError("size classes are not tuned to the alignment")


def ffs(word: int) -> int:
    """Index of the lowest set bit of a 32-bit word, or -1 if none is set."""
    word &= _WORD_MASK
    if not word:
        return -1
    return (word & -word).bit_length() - 1


def fls(word: int) -> int:
    """Index of the highest set bit of a 32-bit word, or -1 if none is set."""
    return (word & _WORD_MASK).bit_length() - 1


def fls_sizet(size: int) -> int:
    """Index of the highest set bit of a 64-bit size, or -1 for zero."""
    size &= _SIZE_MASK
    high = size >> 32
    if high:
        return 32 + fls(high)
    return fls(size & _WORD_MASK)


def _check_alignment(align: int) -> None:
    if align <= 0 or align & (align - 1):
        raise ValueError(f"must align to a power of two, got {align}")


def align_up(x: int, align: int) -> int:
    """Round ``x`` up to a multiple of ``align``."""
    _check_alignment(align)
    return (x + (align - 1)) & ~(align - 1)


def align_down(x: int, align: int) -> int:
    """Round ``x`` down to a multiple of ``align``."""
    _check_alignment(align)
    return x - (x & (align - 1))


def adjust_request_size(size: int, align: int) -> int:
    """Align a request and raise it to the minimum block size.

    Returns 0 for a zero request and for one too large to be served.
    """
    if not size:
        return 0
    aligned = align_up(size, align)
    if aligned < BLOCK_SIZE_MAX:
        return max(aligned, BLOCK_SIZE_MIN)
    return 0


def mapping_insert(size: int) -> tuple[int, int]:
    """First- and second-level list indices of a block of ``size`` bytes."""
    if size < SMALL_BLOCK_SIZE:
        return 0, size // (SMALL_BLOCK_SIZE // SL_INDEX_COUNT)
    fl = fls_sizet(size)
    sl = (size >> (fl - SL_INDEX_COUNT_LOG2)) ^ (1 << SL_INDEX_COUNT_LOG2)
    return fl - (FL_INDEX_SHIFT - 1), sl


def mapping_search(size: int) -> tuple[int, int]:
    """List indices for a request, rounded up to the next size class."""
    if size >= SMALL_BLOCK_SIZE:
        size += (1 << (fls_sizet(size) - SL_INDEX_COUNT_LOG2)) - 1
    return mapping_insert(size)