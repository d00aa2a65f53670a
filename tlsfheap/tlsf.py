"""Two-level segregated fit allocator over a simulated byte heap.

Pointers are integer offsets into the heap. Block headers are stored in the
heap itself with the same layout as on a 64-bit target, so user data,
free-list links and boundary tags share memory exactly as they would in a
native allocator.
"""

from __future__ import annotations

import struct
from typing import Callable, Iterator, Optional

from .bits import (
    ALIGN_SIZE,
    BLOCK_HEADER_OVERHEAD,
    BLOCK_HEADER_SIZE,
    BLOCK_SIZE_MAX,
    BLOCK_SIZE_MIN,
    BLOCK_START_OFFSET,
    FL_INDEX_COUNT,
    POINTER_SIZE,
    SL_INDEX_COUNT,
    adjust_request_size,
    align_down,
    align_up,
    ffs,
    mapping_insert,
    mapping_search,
)

_FREE_BIT = 1 << 0
_PREV_FREE_BIT = 1 << 1
_FLAG_BITS = _FREE_BIT | _PREV_FREE_BIT
_WORD_MASK = 0xFFFFFFFF
_SIZE_MASK = 0xFFFFFFFFFFFFFFFF

_QWORD = struct.Struct("<Q")

# Layout of the control structure: the null block, the first-level bitmap,
# the second-level bitmaps and the table of free-list heads.
_CONTROL_HEAD = BLOCK_HEADER_SIZE + 4 + 4 * FL_INDEX_COUNT
CONTROL_SIZE = align_up(_CONTROL_HEAD, POINTER_SIZE) + FL_INDEX_COUNT * SL_INDEX_COUNT * POINTER_SIZE

# Overhead of a pool: one free block header plus the sentinel block.
POOL_OVERHEAD = 2 * BLOCK_HEADER_OVERHEAD

# Overhead of one allocation.
ALLOC_OVERHEAD = BLOCK_HEADER_OVERHEAD

# The null block lives at the start of the control area.
_NULL_BLOCK = 0

# Offsets of the header fields relative to a block address.
_PREV_PHYS = 0
_SIZE = POINTER_SIZE
_NEXT_FREE = 2 * POINTER_SIZE
_PREV_FREE = 3 * POINTER_SIZE

Walker = Callable[[int, int, bool], None]


def _default_walker(ptr: int, size: int, used: bool) -> None:
    block = ptr - BLOCK_START_OFFSET
    print(f"\t{ptr:#x} {'used' if used else 'free'} size: {size:x} ({block:#x})")


class Tlsf:
    """A TLSF allocator managing a heap of ``size`` bytes.

    The first ``CONTROL_SIZE`` bytes hold the control structure; the rest
    becomes the initial pool.
    """

    def __init__(self, size: int) -> None:
        if size <= CONTROL_SIZE:
            raise ValueError(f"heap must be larger than {CONTROL_SIZE} bytes")
        self._mem = bytearray(size)
        self._fl_bitmap = 0
        self._sl_bitmap = [0] * FL_INDEX_COUNT
        self._blocks = [[_NULL_BLOCK] * SL_INDEX_COUNT for _ in range(FL_INDEX_COUNT)]
        self._set_next_link(_NULL_BLOCK, _NULL_BLOCK)
        self._set_prev_link(_NULL_BLOCK, _NULL_BLOCK)
        self._pool = self.add_pool(CONTROL_SIZE, size - CONTROL_SIZE)

    # -- raw header access -------------------------------------------------

    def _load(self, addr: int) -> int:
        return _QWORD.unpack_from(self._mem, addr)[0]

    def _store(self, addr: int, value: int) -> None:
        _QWORD.pack_into(self._mem, addr, value & _SIZE_MASK)

    def _prev_phys(self, block: int) -> int:
        return self._load(block + _PREV_PHYS)

    def _set_prev_phys(self, block: int, value: int) -> None:
        self._store(block + _PREV_PHYS, value)

    def _next_link(self, block: int) -> int:
        return self._load(block + _NEXT_FREE)

    def _set_next_link(self, block: int, value: int) -> None:
        self._store(block + _NEXT_FREE, value)

    def _prev_link(self, block: int) -> int:
        return self._load(block + _PREV_FREE)

    def _set_prev_link(self, block: int, value: int) -> None:
        self._store(block + _PREV_FREE, value)

    def _raw_size(self, block: int) -> int:
        return self._load(block + _SIZE)

    def _size(self, block: int) -> int:
        return self._raw_size(block) & ~_FLAG_BITS

    def _set_size(self, block: int, size: int) -> None:
        self._store(block + _SIZE, size | (self._raw_size(block) & _FLAG_BITS))

    def _is_last(self, block: int) -> bool:
        return self._size(block) == 0

    def _is_free(self, block: int) -> bool:
        return bool(self._raw_size(block) & _FREE_BIT)

    def _set_free(self, block: int) -> None:
        self._store(block + _SIZE, self._raw_size(block) | _FREE_BIT)

    def _set_used(self, block: int) -> None:
        self._store(block + _SIZE, self._raw_size(block) & ~_FREE_BIT)

    def _is_prev_free(self, block: int) -> bool:
        return bool(self._raw_size(block) & _PREV_FREE_BIT)

    def _set_prev_free(self, block: int) -> None:
        self._store(block + _SIZE, self._raw_size(block) | _PREV_FREE_BIT)

    def _set_prev_used(self, block: int) -> None:
        self._store(block + _SIZE, self._raw_size(block) & ~_PREV_FREE_BIT)

    # -- block navigation --------------------------------------------------

    @staticmethod
    def _from_ptr(ptr: int) -> int:
        return ptr - BLOCK_START_OFFSET

    @staticmethod
    def _to_ptr(block: int) -> int:
        return block + BLOCK_START_OFFSET

    def _block_next(self, block: int) -> int:
        return self._to_ptr(block) + self._size(block) - BLOCK_HEADER_OVERHEAD

    def _link_next(self, block: int) -> int:
        nxt = self._block_next(block)
        self._set_prev_phys(nxt, block)
        return nxt

    def _mark_as_free(self, block: int) -> None:
        nxt = self._link_next(block)
        self._set_prev_free(nxt)
        self._set_free(block)

    def _mark_as_used(self, block: int) -> None:
        nxt = self._block_next(block)
        self._set_prev_used(nxt)
        self._set_used(block)

    # -- free lists --------------------------------------------------------

    def _search_suitable_block(self, fl: int, sl: int) -> tuple[Optional[int], int, int]:
        sl_map = self._sl_bitmap[fl] & ((_WORD_MASK << sl) & _WORD_MASK)
        if not sl_map:
            fl_map = self._fl_bitmap & ((_WORD_MASK << (fl + 1)) & _WORD_MASK)
            if not fl_map:
                return None, fl, sl
            fl = ffs(fl_map)
            sl_map = self._sl_bitmap[fl]
        sl = ffs(sl_map)
        return self._blocks[fl][sl], fl, sl

    def _remove_free_block(self, block: int, fl: int, sl: int) -> None:
        prev = self._prev_link(block)
        nxt = self._next_link(block)
        self._set_prev_link(nxt, prev)
        self._set_next_link(prev, nxt)
        if self._blocks[fl][sl] == block:
            self._blocks[fl][sl] = nxt
            if nxt == _NULL_BLOCK:
                self._sl_bitmap[fl] &= ~(1 << sl)
                if not self._sl_bitmap[fl]:
                    self._fl_bitmap &= ~(1 << fl)

    def _insert_free_block(self, block: int, fl: int, sl: int) -> None:
        current = self._blocks[fl][sl]
        self._set_next_link(block, current)
        self._set_prev_link(block, _NULL_BLOCK)
        self._set_prev_link(current, block)
        self._blocks[fl][sl] = block
        self._fl_bitmap |= 1 << fl
        self._sl_bitmap[fl] |= 1 << sl

    def _block_remove(self, block: int) -> None:
        fl, sl = mapping_insert(self._size(block))
        self._remove_free_block(block, fl, sl)

    def _block_insert(self, block: int) -> None:
        fl, sl = mapping_insert(self._size(block))
        self._insert_free_block(block, fl, sl)

    # -- splitting and merging ---------------------------------------------

    def _can_split(self, block: int, size: int) -> bool:
        return self._size(block) >= BLOCK_HEADER_SIZE + size

    def _split(self, block: int, size: int) -> int:
        remaining = self._to_ptr(block) + size - BLOCK_HEADER_OVERHEAD
        remain_size = self._size(block) - (size + BLOCK_HEADER_OVERHEAD)
        self._set_size(remaining, remain_size)
        self._set_size(block, size)
        self._mark_as_free(remaining)
        return remaining

    def _absorb(self, prev: int, block: int) -> int:
        self._store(prev + _SIZE, self._raw_size(prev) + self._size(block) + BLOCK_HEADER_OVERHEAD)
        self._link_next(prev)
        return prev

    def _merge_prev(self, block: int) -> int:
        if self._is_prev_free(block):
            prev = self._prev_phys(block)
            self._block_remove(prev)
            block = self._absorb(prev, block)
        return block

    def _merge_next(self, block: int) -> int:
        nxt = self._block_next(block)
        if self._is_free(nxt):
            self._block_remove(nxt)
            block = self._absorb(block, nxt)
        return block

    def _trim_free(self, block: int, size: int) -> None:
        if self._can_split(block, size):
            remaining = self._split(block, size)
            self._link_next(block)
            self._set_prev_free(remaining)
            self._block_insert(remaining)

    def _trim_used(self, block: int, size: int) -> None:
        if self._can_split(block, size):
            remaining = self._split(block, size)
            self._set_prev_used(remaining)
            remaining = self._merge_next(remaining)
            self._block_insert(remaining)

    def _trim_free_leading(self, block: int, size: int) -> int:
        remaining = block
        if self._can_split(block, size):
            remaining = self._split(block, size - BLOCK_HEADER_OVERHEAD)
            self._set_prev_free(remaining)
            self._link_next(block)
            self._block_insert(block)
        return remaining

    def _locate_free(self, size: int) -> Optional[int]:
        if not size:
            return None
        fl, sl = mapping_search(size)
        if fl >= FL_INDEX_COUNT:
            return None
        block, fl, sl = self._search_suitable_block(fl, sl)
        if block is not None:
            self._remove_free_block(block, fl, sl)
        return block

    def _prepare_used(self, block: int, size: int) -> int:
        self._trim_free(block, size)
        self._mark_as_used(block)
        return self._to_ptr(block)

    def _used_block(self, ptr: int) -> int:
        if (
            not isinstance(ptr, int)
            or ptr < BLOCK_START_OFFSET
            or ptr >= len(self._mem)
            or ptr % ALIGN_SIZE
        ):
            raise ValueError(f"invalid pointer {ptr!r}")
        block = self._from_ptr(ptr)
        if self._is_free(block):
            raise ValueError(f"block at {ptr:#x} already marked as free")
        return block

    # -- pools -------------------------------------------------------------

    def get_pool(self) -> int:
        """Offset of the pool created with the heap."""
        return self._pool

    def add_pool(self, offset: int, size: int) -> int:
        """Hand ``size`` bytes at ``offset`` to the allocator; return the pool."""
        if offset % ALIGN_SIZE:
            raise ValueError(f"memory must be aligned by {ALIGN_SIZE} bytes")
        if offset < BLOCK_HEADER_OVERHEAD or offset + size > len(self._mem):
            raise ValueError("pool does not lie within the heap")
        pool_bytes = align_down(size - POOL_OVERHEAD, ALIGN_SIZE)
        if pool_bytes < BLOCK_SIZE_MIN or pool_bytes > BLOCK_SIZE_MAX:
            raise ValueError(
                f"memory size must be between {POOL_OVERHEAD + BLOCK_SIZE_MIN} "
                f"and {POOL_OVERHEAD + BLOCK_SIZE_MAX} bytes"
            )
        block = offset - BLOCK_HEADER_OVERHEAD
        self._set_size(block, pool_bytes)
        self._set_free(block)
        self._set_prev_used(block)
        self._block_insert(block)

        nxt = self._link_next(block)
        self._set_size(nxt, 0)
        self._set_used(nxt)
        self._set_prev_free(nxt)
        return offset

    def remove_pool(self, pool: int) -> None:
        """Withdraw a pool that holds no allocations."""
        block = pool - BLOCK_HEADER_OVERHEAD
        if not self._is_free(block):
            raise ValueError("pool still holds allocations")
        nxt = self._block_next(block)
        if self._is_free(nxt) or self._size(nxt) != 0:
            raise ValueError("pool still holds allocations")
        fl, sl = mapping_insert(self._size(block))
        self._remove_free_block(block, fl, sl)

    # -- allocation --------------------------------------------------------

    def malloc(self, size: int) -> Optional[int]:
        """Allocate ``size`` bytes; ``None`` for a zero-size request."""
        if size < 0:
            raise ValueError("size must not be negative")
        if size == 0:
            return None
        adjust = adjust_request_size(size, ALIGN_SIZE)
        block = self._locate_free(adjust)
        if block is None:
            raise MemoryError(f"cannot allocate {size} bytes")
        return self._prepare_used(block, adjust)

    def memalign(self, align: int, size: int) -> Optional[int]:
        """Allocate ``size`` bytes at an address that is a multiple of ``align``."""
        if align <= 0 or align & (align - 1):
            raise ValueError(f"must align to a power of two, got {align}")
        if size < 0:
            raise ValueError("size must not be negative")
        if size == 0:
            return None
        adjust = adjust_request_size(size, ALIGN_SIZE)
        gap_minimum = BLOCK_HEADER_SIZE
        size_with_gap = adjust_request_size(adjust + align + gap_minimum, align)
        aligned_size = size_with_gap if adjust and align > ALIGN_SIZE else adjust

        block = self._locate_free(aligned_size)
        if block is None:
            raise MemoryError(f"cannot allocate {size} bytes aligned to {align}")

        ptr = self._to_ptr(block)
        aligned = align_up(ptr, align)
        gap = aligned - ptr
        if gap and gap < gap_minimum:
            offset = max(gap_minimum - gap, align)
            aligned = align_up(aligned + offset, align)
            gap = aligned - ptr
        if gap:
            block = self._trim_free_leading(block, gap)
        return self._prepare_used(block, adjust)

    def free(self, ptr: Optional[int]) -> None:
        """Release an allocation; a null pointer is ignored."""
        if not ptr:
            return
        block = self._used_block(ptr)
        self._mark_as_free(block)
        block = self._merge_prev(block)
        block = self._merge_next(block)
        self._block_insert(block)

    def realloc(self, ptr: Optional[int], size: int) -> Optional[int]:
        """Resize an allocation, moving it if needed.

        A null pointer allocates; a zero size frees and returns ``None``.
        A request that cannot be met raises ``MemoryError`` and leaves the
        original allocation untouched.
        """
        if size < 0:
            raise ValueError("size must not be negative")
        if ptr and size == 0:
            self.free(ptr)
            return None
        if not ptr:
            return self.malloc(size)

        block = self._used_block(ptr)
        nxt = self._block_next(block)
        cursize = self._size(block)
        combined = cursize + self._size(nxt) + BLOCK_HEADER_OVERHEAD
        adjust = adjust_request_size(size, ALIGN_SIZE)
        if not adjust:
            raise MemoryError(f"cannot allocate {size} bytes")

        if adjust > cursize and (not self._is_free(nxt) or adjust > combined):
            new_ptr = self.malloc(size)
            count = min(cursize, size)
            self._mem[new_ptr:new_ptr + count] = self._mem[ptr:ptr + count]
            self.free(ptr)
            return new_ptr

        if adjust > cursize:
            self._merge_next(block)
            self._mark_as_used(block)
        self._trim_used(block, adjust)
        return ptr

    def block_size(self, ptr: Optional[int]) -> int:
        """Internal size of the block behind ``ptr``; 0 for a null pointer."""
        if not ptr:
            return 0
        return self._size(self._from_ptr(ptr))

    # -- data access -------------------------------------------------------

    def _check_range(self, ptr: int, size: int) -> None:
        if size < 0 or ptr < 0 or ptr + size > len(self._mem):
            raise IndexError(f"range {ptr:#x}+{size} lies outside the heap")

    def read(self, ptr: int, size: int) -> bytes:
        """Copy ``size`` bytes out of the heap starting at ``ptr``."""
        self._check_range(ptr, size)
        return bytes(self._mem[ptr:ptr + size])

    def write(self, ptr: int, data: bytes) -> None:
        """Copy ``data`` into the heap starting at ``ptr``."""
        self._check_range(ptr, len(data))
        self._mem[ptr:ptr + len(data)] = data

    # -- debugging ---------------------------------------------------------

    def _iter_pool(self, pool: int) -> Iterator[tuple[int, int, bool]]:
        block = pool - BLOCK_HEADER_OVERHEAD
        while not self._is_last(block):
            yield self._to_ptr(block), self._size(block), not self._is_free(block)
            block = self._block_next(block)

    def walk_pool(self, pool: int, walker: Optional[Walker] = None) -> None:
        """Call ``walker(ptr, size, used)`` for every block of a pool.

        Without a walker, each block is printed.
        """
        visit = walker if walker is not None else _default_walker
        for ptr, size, used in self._iter_pool(pool):
            visit(ptr, size, used)

    def check(self) -> int:
        """Check free lists and bitmaps; return 0, or minus the failures."""
        failures = 0

        def insist(condition: bool) -> None:
            nonlocal failures
            if not condition:
                failures += 1

        for i in range(FL_INDEX_COUNT):
            for j in range(SL_INDEX_COUNT):
                fl_map = self._fl_bitmap & (1 << i)
                sl_list = self._sl_bitmap[i]
                sl_map = sl_list & (1 << j)
                block = self._blocks[i][j]

                if not fl_map:
                    insist(not sl_map)
                if not sl_map:
                    insist(block == _NULL_BLOCK)
                    continue

                insist(bool(sl_list))
                insist(block != _NULL_BLOCK)

                while block != _NULL_BLOCK:
                    insist(self._is_free(block))
                    insist(not self._is_prev_free(block))
                    nxt = self._block_next(block)
                    insist(not self._is_free(nxt))
                    insist(self._is_prev_free(nxt))
                    insist(self._size(block) >= BLOCK_SIZE_MIN)
                    insist(mapping_insert(self._size(block)) == (i, j))
                    block = self._next_link(block)
        return -failures

    def check_pool(self, pool: int) -> int:
        """Check the physical chain of a pool; return 0, or minus the failures."""
        prev_status = False
        failures = 0
        for ptr, size, _used in self._iter_pool(pool):
            block = self._from_ptr(ptr)
            if prev_status != self._is_prev_free(block):
                failures += 1
            if size != self._size(block):
                failures += 1
            prev_status = self._is_free(block)
        return -failures